"""Installation recipes, their YAML form, and matching them against a host."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import yaml

from nrcli.models import (
    Attributes,
    LogMatch,
    PostInstallConfiguration,
    PreInstallConfiguration,
    QuickstartsFilter,
    RecipeInputVariable,
    RecipeInstallTarget,
    SuccessLinkConfig,
    TargetType,
)

log = logging.getLogger(__name__)

INFRA_AGENT_RECIPE_NAME = "infrastructure-agent-installer"
LOGGING_RECIPE_NAME = "logs-integration"

# Dynamic values handed to recipes when they are executed.
RECIPE_VARIABLES: dict[str, str] = {}


def _as_mapping(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{what} must be a mapping, got {type(value).__name__}")
    result: dict[str, Any] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise TypeError(f"{what} has a non-string key: {key!r}")
        result[key] = item
    return result


def _as_list(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise TypeError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def _boolean(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"field {key!r} must be a boolean, got {type(value).__name__}")
    return value


def _strings(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    items = _as_list(value, key)
    for item in items:
        if not isinstance(item, str):
            raise TypeError(f"field {key!r} must hold strings, got {type(item).__name__}")
    return list(items)


def _entries(data: Mapping[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    return [_as_mapping(item, key) for item in _as_list(value, key)]


def _install_to_string(data: Mapping[str, Any]) -> str:
    value = data.get("install")
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    install = _as_mapping(value, "install")
    try:
        return yaml.safe_dump(install, default_flow_style=False, allow_unicode=True)
    except yaml.YAMLError as err:
        raise ValueError(f"error unmarshaling recipe.install to string: {err}") from err


def _install_targets(data: Mapping[str, Any]) -> list[RecipeInstallTarget]:
    return [
        RecipeInstallTarget(
            kernel_arch=_string(entry, "kernelArch"),
            kernel_version=_string(entry, "kernelVersion"),
            os=_string(entry, "os"),
            platform=_string(entry, "platform"),
            platform_family=_string(entry, "platformFamily"),
            platform_version=_string(entry, "platformVersion"),
            type=_string(entry, "type"),
        )
        for entry in _entries(data, "installTargets")
    ]


def _input_vars(data: Mapping[str, Any]) -> list[RecipeInputVariable]:
    return [
        RecipeInputVariable(
            name=_string(entry, "name"),
            default=_string(entry, "default"),
            prompt=_string(entry, "prompt"),
            secret=_boolean(entry, "secret"),
        )
        for entry in _entries(data, "inputVars")
    ]


def _log_attributes(entry: Mapping[str, Any]) -> Attributes:
    value = entry.get("attributes")
    if value is None:
        return Attributes()
    attrs = _as_mapping(value, "attributes")
    for key in attrs:
        _string(attrs, key)
    return Attributes(logtype=_string(attrs, "logtype"))


def _log_match(data: Mapping[str, Any]) -> list[LogMatch]:
    return [
        LogMatch(
            name=_string(entry, "name"),
            file=_string(entry, "file"),
            pattern=_string(entry, "pattern"),
            systemd=_string(entry, "systemd"),
            attributes=_log_attributes(entry),
        )
        for entry in _entries(data, "logMatch")
    ]


def _optional_mapping(data: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    return _as_mapping(value, key)


@dataclass
class OpenInstallationRecipe:
    """Installation instructions and definition of an instrumentation integration."""

    name: str = ""
    display_name: str = ""
    description: str = ""
    id: str = ""
    file: str = ""
    repository: str = ""
    dependencies: list[str] = field(default_factory=list)
    input_vars: list[RecipeInputVariable] = field(default_factory=list)
    install: str = ""
    install_targets: list[RecipeInstallTarget] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    log_match: list[LogMatch] = field(default_factory=list)
    process_match: list[str] = field(default_factory=list)
    post_install: PostInstallConfiguration = field(default_factory=PostInstallConfiguration)
    pre_install: PreInstallConfiguration = field(default_factory=PreInstallConfiguration)
    quickstarts: QuickstartsFilter = field(default_factory=QuickstartsFilter)
    stability: str = ""
    success_link_config: SuccessLinkConfig = field(default_factory=SuccessLinkConfig)
    validation_nrql: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OpenInstallationRecipe":
        """Build a recipe from a decoded YAML or JSON document.

        ``install`` may be a mapping (recipe files) or a string (API results);
        a mapping is serialised back to YAML text.
        """
        data = _as_mapping(data, "recipe")

        pre = _optional_mapping(data, "preInstall")
        post = _optional_mapping(data, "postInstall")
        link = _optional_mapping(data, "successLinkConfig")

        return cls(
            name=_string(data, "name"),
            display_name=_string(data, "displayName"),
            description=_string(data, "description"),
            id=_string(data, "id"),
            file=_string(data, "file"),
            repository=_string(data, "repository"),
            dependencies=_strings(data, "dependencies"),
            input_vars=_input_vars(data),
            install=_install_to_string(data),
            install_targets=_install_targets(data),
            keywords=_strings(data, "keywords"),
            log_match=_log_match(data),
            process_match=_strings(data, "processMatch"),
            post_install=(
                PostInstallConfiguration(info=_string(post, "info"))
                if post is not None
                else PostInstallConfiguration()
            ),
            pre_install=(
                PreInstallConfiguration(
                    info=_string(pre, "info"), prompt=_string(pre, "prompt")
                )
                if pre is not None
                else PreInstallConfiguration()
            ),
            stability=_string(data, "stability"),
            success_link_config=(
                SuccessLinkConfig(
                    type=_string(link, "type"), filter=_string(link, "filter")
                )
                if link is not None
                else SuccessLinkConfig()
            ),
            validation_nrql=_string(data, "validationNrql"),
        )

    def post_install_message(self) -> str:
        """The message to show after installation, or an empty string."""
        return self.post_install.info or ""

    def pre_install_message(self) -> str:
        """The message to show before installation, or an empty string."""
        return self.pre_install.info or ""

    def set_recipe_var(self, key: str, value: str) -> None:
        """Record a variable to be passed to recipe execution."""
        RECIPE_VARIABLES[key] = value

    def is_apm(self) -> bool:
        """Whether the recipe is tagged as an APM recipe."""
        return self.has_keyword("apm")

    def has_host_target_type(self) -> bool:
        """Whether any install target is a host."""
        return self.has_target_type(TargetType.HOST)

    def has_application_target_type(self) -> bool:
        """Whether any install target is an application."""
        return self.has_target_type(TargetType.APPLICATION)

    def has_keyword(self, keyword: str) -> bool:
        """Whether the recipe carries the keyword, ignoring case."""
        wanted = keyword.casefold()
        return any(single.casefold() == wanted for single in self.keywords)

    def has_target_type(self, target_type: str) -> bool:
        """Whether any install target has exactly this type."""
        return any(target.type == target_type for target in self.install_targets)


def parse_recipe(text: str) -> OpenInstallationRecipe:
    """Parse a recipe from YAML text."""
    data = yaml.safe_load(text)
    if data is None:
        return OpenInstallationRecipe()
    if not isinstance(data, Mapping):
        raise ValueError("recipe document must be a mapping")
    return OpenInstallationRecipe.from_mapping(data)


@runtime_checkable
class GenericProcess(Protocol):
    """An abstracted representation of a running process."""

    def name(self) -> str: ...

    def cmdline(self) -> str: ...

    def pid(self) -> int: ...


@dataclass
class MatchedProcess:
    """A discovered process together with the pattern that matched it."""

    command: str = ""
    process: GenericProcess | None = None
    matching_pattern: str = ""


def _matches(wanted: str, actual: str) -> bool:
    return not wanted or wanted.casefold() == actual.casefold()


@dataclass
class DiscoveryManifest:
    """Discovered information about the host."""

    hostname: str = ""
    kernel_arch: str = ""
    kernel_version: str = ""
    os: str = ""
    platform: str = ""
    platform_family: str = ""
    platform_version: str = ""
    processes: list[MatchedProcess] = field(default_factory=list)

    def add_matched_process(self, process: MatchedProcess) -> None:
        """Add a discovered process to the manifest."""
        self.processes.append(process)

    def constrain_recipes(
        self, all_recipes: Iterable[OpenInstallationRecipe]
    ) -> list[OpenInstallationRecipe]:
        """Keep the recipes with an install target matching this host.

        A recipe is listed once for each of its targets that matches.
        """
        recipes: list[OpenInstallationRecipe] = []
        for recipe in all_recipes:
            if not recipe.install_targets:
                log.warning("recipe has no InstallTargets: %s", recipe.name)
            for target in recipe.install_targets:
                if (
                    _matches(target.kernel_arch, self.kernel_arch)
                    and _matches(target.kernel_version, self.kernel_version)
                    and _matches(target.os, self.os)
                    and _matches(target.platform, self.platform)
                    and _matches(target.platform_family, self.platform_family)
                    and _matches(target.platform_version, self.platform_version)
                ):
                    recipes.append(recipe)
        log.debug("%d recipes found for manifest", len(recipes))
        return recipes