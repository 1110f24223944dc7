"""Navigator SecretStore Meta information.
   Navigator SecretStore persists per-tenant encrypted credential bags
   and serves them back through a decryption cache.
"""
__title__ = 'navigator_secretstore'
__description__ = (
   'Navigator SecretStore persists per-tenant encrypted credentials '
   'into a relational database.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-secretstore'
