"""
Pydantic schemas for data validation.

Schemas:
    registry: npm registry search payloads (PackageDescriptor, SearchResponse)
    package_config: Static whitelist / blacklist configuration

Usage:
    from schemas.registry import PackageDescriptor
    from schemas.package_config import PackageConfig, load_package_config

Example:
    config = PackageConfig.model_validate({
        "whitelist": {"core": ["pkg-a"]},
        "blacklist": {"namespaces": ["@spam/"], "packages": ["pkg-b"]}
    })

    assert config.package_categories() == {"pkg-a": ["core"]}
    assert config.blacklist.matches("@spam/anything")
"""

from schemas.registry import PackageDescriptor, SearchObject, SearchResponse
from schemas.package_config import BlacklistConfig, PackageConfig, load_package_config

__all__ = [
    "PackageDescriptor",
    "SearchObject",
    "SearchResponse",
    "BlacklistConfig",
    "PackageConfig",
    "load_package_config",
]
