"""
Remote asset storage.
"""

from vidtube.assets.asset_store import (
    AssetStore,
    CloudinaryAssetStore,
    UploadedAsset,
    save_upload_to_temp,
    sign_params,
)

__all__ = [
    "AssetStore",
    "CloudinaryAssetStore",
    "UploadedAsset",
    "save_upload_to_temp",
    "sign_params",
]
