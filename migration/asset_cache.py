"""
Local asset cache: downloaded files live at <root>/<asset id>/<filename>.

The asset id directory keeps files with identical names apart.
"""

from pathlib import Path
from typing import Union

from .filenames import local_key


class AssetCache:

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, asset) -> Path:
        asset_id, filename = local_key(asset)
        return self.root / asset_id / filename

    def exists(self, asset) -> bool:
        if not asset or not asset.id or not asset.filename:
            return False
        return self.path_for(asset).is_file()

    def prepare(self, asset) -> Path:
        """Create the asset's directory and return the file path to write."""
        path = self.path_for(asset)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
