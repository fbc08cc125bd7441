"""Loading installation recipes from local directories, files and URLs."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union
from urllib.error import HTTPError
from urllib.parse import ParseResult, SplitResult
from urllib.request import urlopen

import yaml

from nrcli.recipe import DiscoveryManifest, OpenInstallationRecipe, parse_recipe

log = logging.getLogger(__name__)

_RECIPE_EXTENSIONS = frozenset({".yml", ".yaml"})

HTTPGet = Callable[[str], "tuple[int, bytes]"]
ReadFile = Callable[[str], bytes]
RecipeURL = Union[str, ParseResult, SplitResult]


class RecipeNotFoundError(LookupError):
    """A recipe was requested by name but does not exist for the given constraint."""

    def __init__(self, message: str = "recipe not found") -> None:
        super().__init__(message)


class RecipeFetcher(Protocol):
    """Something that retrieves recipe information."""

    def fetch_recipe(
        self, manifest: DiscoveryManifest, friendly_name: str
    ) -> OpenInstallationRecipe: ...

    def fetch_recommendations(
        self, manifest: DiscoveryManifest
    ) -> list[OpenInstallationRecipe]: ...

    def fetch_recipes(self, manifest: DiscoveryManifest) -> list[OpenInstallationRecipe]: ...


def _extension(path: Path) -> str:
    _, dot, ext = path.name.rpartition(".")
    return f".{ext}" if dot else ""


def _walk(path: Path) -> Iterator[Path]:
    """Yield the path and everything below it, in lexical order, not following links."""
    yield path
    if path.is_symlink() or not path.is_dir():
        return
    try:
        entries = sorted(path.iterdir(), key=lambda entry: entry.name)
    except OSError as err:
        log.debug("unable to list %s: %s", path, err)
        return
    for entry in entries:
        yield from _walk(entry)


def load_recipes_from_dir(path: str | Path) -> list[OpenInstallationRecipe]:
    """Load every ``.yml``/``.yaml`` recipe below ``path``.

    Files that cannot be read or parsed are logged and skipped.
    """
    log.debug("loading recipes from %s", path)
    recipe_paths = [p for p in _walk(Path(path)) if _extension(p) in _RECIPE_EXTENSIONS]

    recipes: list[OpenInstallationRecipe] = []
    for recipe_path in recipe_paths:
        try:
            content = recipe_path.read_text(encoding="utf-8")
            recipes.append(parse_recipe(content))
        except (OSError, UnicodeDecodeError, yaml.YAMLError, ValueError, TypeError) as err:
            log.error("%s: %s", recipe_path, err)
    return recipes


@dataclass
class LocalRecipeFetcher:
    """Fetches recipes from YAML files in a local directory."""

    path: str = ""

    def fetch_recipe(
        self, manifest: DiscoveryManifest, friendly_name: str
    ) -> OpenInstallationRecipe:
        """Return the recommended recipe with the given name."""
        for recipe in self.fetch_recommendations(manifest):
            if recipe.name == friendly_name:
                return recipe
        raise RecipeNotFoundError(f"{friendly_name}: recipe not found")

    def fetch_recommendations(
        self, manifest: DiscoveryManifest
    ) -> list[OpenInstallationRecipe]:
        """Return the local recipes that match the manifest."""
        return manifest.constrain_recipes(self.fetch_recipes(manifest))

    def fetch_recipes(self, manifest: DiscoveryManifest) -> list[OpenInstallationRecipe]:
        """Return every recipe found in the directory."""
        if not self.path:
            raise ValueError("unable to load recipes from empty path spec")
        return load_recipes_from_dir(self.path)


def _default_http_get(url: str) -> tuple[int, bytes]:
    try:
        with urlopen(url) as response:
            return response.status, response.read()
    except HTTPError as err:
        err.close()
        return err.code, b""


def _default_read_file(filename: str) -> bytes:
    return Path(filename).read_bytes()


def new_recipe_file(text: str) -> OpenInstallationRecipe:
    """Parse a recipe from the text of a recipe file."""
    return parse_recipe(text)


class RecipeFileFetcher:
    """Loads single recipe files from URLs or the local file system."""

    def __init__(
        self,
        http_get: HTTPGet | None = None,
        read_file: ReadFile | None = None,
    ) -> None:
        self.http_get = http_get or _default_http_get
        self.read_file = read_file or _default_read_file

    def fetch_recipe_file(self, recipe_url: RecipeURL) -> OpenInstallationRecipe:
        """Download a recipe file and parse it."""
        url = recipe_url if isinstance(recipe_url, str) else recipe_url.geturl()
        status, body = self.http_get(url)
        if not 200 <= status <= 299:
            raise ConnectionError(
                f"received non-2xx status code {status} when retrieving recipe"
            )
        return new_recipe_file(body.decode("utf-8"))

    def load_recipe_file(self, filename: str) -> OpenInstallationRecipe:
        """Read a recipe file from disk and parse it."""
        return new_recipe_file(self.read_file(filename).decode("utf-8"))