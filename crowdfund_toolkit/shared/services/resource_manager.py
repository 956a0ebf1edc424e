import json
from pathlib import Path
from typing import Any, Dict, List

from crowdfund_toolkit.shared.exceptions import ConfigurationException


class ResourceManager:
    """Manages access to packaged resources (contract ABIs)"""

    def __init__(self, resources_root: Path = None):
        package_root = Path(__file__).resolve().parent.parent.parent
        self._resources_root = (
            resources_root or package_root / "resources"
        ).resolve(strict=False)
        self._cache: Dict[str, Any] = {}

    def get_resource_path(self, resource_type: str, filename: str) -> Path:
        """Get full path to a resource file, refusing paths that escape it"""
        resource_dir = (self._resources_root / resource_type).resolve(
            strict=False
        )
        resource_path = (resource_dir / filename).resolve(strict=False)

        try:
            resource_dir.relative_to(self._resources_root)
            resource_path.relative_to(resource_dir)
        except ValueError:
            raise ConfigurationException(
                f"Invalid resource path outside {self._resources_root}: "
                f"{resource_type}/{filename}"
            )

        return resource_path

    def load_abi(self, name: str) -> List[Dict[str, Any]]:
        """Load an ABI file from the resources"""
        cache_key = f"abi:{name}"
        if cache_key not in self._cache:
            abi_path = self.get_resource_path("abi", f"{name}.json")
            if not abi_path.exists():
                raise ConfigurationException(
                    f"ABI file not found: {abi_path}"
                )
            with open(abi_path) as f:
                self._cache[cache_key] = json.load(f)
        return self._cache[cache_key]


# Global instance
resource_manager = ResourceManager()
