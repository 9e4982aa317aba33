"""Enceeper Client Meta information.
   Enceeper Client fetches and decrypts secrets stored in Enceeper slots.
"""
__title__ = 'enceeper_client'
__description__ = (
   'Enceeper Client fetches, decrypts and caches secrets '
   'stored in Enceeper slots.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://www.enceeper.com'
