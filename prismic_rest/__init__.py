"""
Prismic REST API Library

Thin wrappers over the Prismic service endpoints used by the migration.

Modules:
    auth: Account login for bearer tokens
    assets: Asset API listing, download and upload
    customtypes: Custom types and shared slices
    documents: Content API enumeration and Migration API submission
    languages: Repository language configuration
"""

from .auth import login, AuthenticationError

from .assets import list_assets, fetch_asset_inventory, download_asset, upload_asset

from .customtypes import list_slices, insert_slice, list_custom_types, insert_custom_type

from .documents import read_repository_api, get_master_ref, fetch_all_documents, submit_document

from .languages import get_repository_languages

__version__ = "1.0.0"

__all__ = [
    "login",
    "AuthenticationError",
    "list_assets",
    "fetch_asset_inventory",
    "download_asset",
    "upload_asset",
    "list_slices",
    "insert_slice",
    "list_custom_types",
    "insert_custom_type",
    "read_repository_api",
    "get_master_ref",
    "fetch_all_documents",
    "submit_document",
    "get_repository_languages",
]
