"""
Static whitelist / blacklist configuration.

Loaded once per run from a JSON file and passed explicitly to the
category resolver and the deactivator. Instances are frozen.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Dict, List, Tuple
from pathlib import Path
from core.exceptions import PackageConfigError
import logging

logger = logging.getLogger(__name__)


def _ordered_unique(values) -> Tuple[str, ...]:
    """Strip, reject empty names and drop repeats keeping the first occurrence"""
    seen = []
    for value in values:
        value = str(value).strip()
        if not value:
            raise ValueError("Package names cannot be empty")
        if value not in seen:
            seen.append(value)
    return tuple(seen)


class BlacklistConfig(BaseModel):
    """Namespace prefixes and exact package names that are always deactivated"""

    model_config = ConfigDict(frozen=True)

    namespaces: Tuple[str, ...] = Field(default_factory=tuple)
    packages: Tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("namespaces", "packages", mode="before")
    @classmethod
    def clean_names(cls, v):
        if v is None:
            return ()
        return _ordered_unique(v)

    def matches(self, package_name: str) -> bool:
        """True when the name starts with a blacklisted prefix or equals a blacklisted name"""
        if package_name in self.packages:
            return True
        return any(package_name.startswith(prefix) for prefix in self.namespaces)


class PackageConfig(BaseModel):
    """
    Whitelist mapping (category -> ordered package names) plus blacklist.
    """

    model_config = ConfigDict(frozen=True)

    whitelist: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    blacklist: BlacklistConfig = Field(default_factory=BlacklistConfig)

    @field_validator("whitelist", mode="before")
    @classmethod
    def clean_whitelist(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("whitelist must map category names to package lists")

        cleaned = {}
        for category, names in v.items():
            category = str(category).strip()
            if not category:
                raise ValueError("Category names cannot be empty")
            if isinstance(names, str):
                raise ValueError(f"Packages for category {category!r} must be a list")
            # Keys that collide after stripping are merged
            cleaned[category] = _ordered_unique(cleaned.get(category, ()) + tuple(names or ()))
        return cleaned

    @property
    def categories(self) -> List[str]:
        """Category names in configuration order"""
        return list(self.whitelist.keys())

    def package_categories(self) -> Dict[str, List[str]]:
        """
        Invert the whitelist into package -> categories.

        Packages appear in first-encounter order and each package's
        categories keep configuration order.
        """
        inverted: Dict[str, List[str]] = {}
        for category, names in self.whitelist.items():
            for name in names:
                inverted.setdefault(name, []).append(category)
        return inverted

    @property
    def whitelisted_packages(self) -> List[str]:
        return list(self.package_categories().keys())


def load_package_config(path) -> PackageConfig:
    """
    Load and validate the whitelist/blacklist file.

    Raises:
        PackageConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PackageConfigError(
            "Unable to read package configuration",
            context={"path": str(path)},
            original_exception=e
        )

    try:
        config = PackageConfig.model_validate_json(raw)
    except ValidationError as e:
        raise PackageConfigError(
            "Invalid package configuration",
            context={"path": str(path), "error_count": e.error_count()},
            original_exception=e
        )

    logger.info(
        f"Loaded package configuration from {path}: "
        f"{len(config.whitelist)} categories, "
        f"{len(config.whitelisted_packages)} whitelisted packages, "
        f"{len(config.blacklist.namespaces)} blacklisted namespaces, "
        f"{len(config.blacklist.packages)} blacklisted packages"
    )
    return config
