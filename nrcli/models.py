"""Value types describing installation recipes and their targets."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class _StrEnum(str, Enum):
    """String-valued enumeration that prints as its value."""

    def __str__(self) -> str:
        return self.value


class Category(_StrEnum):
    """Categorization of a quickstart."""

    COMMUNITY = "COMMUNITY"
    NEWRELIC = "NEWRELIC"


class OperatingSystem(_StrEnum):
    """Operating system of the target environment."""

    DARWIN = "DARWIN"
    LINUX = "LINUX"
    WINDOWS = "WINDOWS"


class Platform(_StrEnum):
    """Operating system distribution."""

    AMAZON = "AMAZON"
    CENTOS = "CENTOS"
    DEBIAN = "DEBIAN"
    REDHAT = "REDHAT"
    SUSE = "SUSE"
    UBUNTU = "UBUNTU"


class PlatformFamily(_StrEnum):
    """Operating system distribution family."""

    DEBIAN = "DEBIAN"
    RHEL = "RHEL"
    SUSE = "SUSE"


class Stability(_StrEnum):
    """Stability level of a recipe."""

    DISABLED = "DISABLED"
    EXPERIMENTAL = "EXPERIMENTAL"
    STABLE = "STABLE"


class SuccessLinkType(_StrEnum):
    """Kind of link generated after a successful installation."""

    EXPLORER = "EXPLORER"
    HOST = "HOST"


class TargetType(_StrEnum):
    """Installation target type."""

    APPLICATION = "APPLICATION"
    CLOUD = "CLOUD"
    DOCKER = "DOCKER"
    HOST = "HOST"
    KUBERNETES = "KUBERNETES"
    SERVERLESS = "SERVERLESS"


@dataclass
class Attributes:
    """Custom event data attributes attached to forwarded logs."""

    logtype: str = ""


@dataclass
class LogMatch:
    """A log forwarding definition."""

    name: str = ""
    file: str = ""
    pattern: str = ""
    systemd: str = ""
    attributes: Attributes = field(default_factory=Attributes)


@dataclass
class PostInstallConfiguration:
    """Optional items shown after running a recipe."""

    info: str = ""


@dataclass
class PreInstallConfiguration:
    """Optional items shown before running a recipe."""

    info: str = ""
    prompt: str = ""


@dataclass
class QuickstartEntityType:
    """Entity type related to a quickstart."""

    domain: str = ""
    type: str = ""


@dataclass
class QuickstartsFilter:
    """Metadata used to filter quickstarts."""

    name: str = ""
    category: str = ""
    entity_type: QuickstartEntityType = field(default_factory=QuickstartEntityType)


@dataclass
class RecipeInputVariable:
    """A variable the user is prompted for before a recipe runs."""

    name: str = ""
    default: str = ""
    prompt: str = ""
    secret: bool = False


@dataclass
class RecipeInstallTarget:
    """One combination of installation criteria a recipe supports."""

    kernel_arch: str = ""
    kernel_version: str = ""
    os: str = ""
    platform: str = ""
    platform_family: str = ""
    platform_version: str = ""
    type: str = ""


@dataclass
class SuccessLinkConfig:
    """Metadata for generating a link after a successful installation."""

    type: str = ""
    filter: str = ""


class InterruptError(Exception):
    """The operation was cancelled by the user."""

    def __init__(self, message: str = "operation canceled") -> None:
        super().__init__(message)


class LicenseKeyFetchError(Exception):
    """The license key could not be retrieved."""

    def __init__(
        self,
        message: str = (
            "Oops, we're having some difficulties fetching your license key. "
            "Please try again later, or see our documentation for installing manually"
        ),
    ) -> None:
        super().__init__(message)


class InsightsInsertKeyError(Exception):
    """The Insights insert key could not be retrieved."""

    def __init__(self, message: str = "error retrieving Insights insert key") -> None:
        super().__init__(message)