"""Polling NRDB to confirm that an installation reports data."""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Mapping
from typing import Any, Protocol

from nrcli.recipe import DiscoveryManifest, OpenInstallationRecipe
from nrcli.utils import NRDBClient
from nrcli.ux import ProgressIndicator, Spinner

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL = 5.0

_PROGRESS_MESSAGE = "Checking for data in New Relic (this may take a few minutes)..."

_ACTION = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_HOSTNAME_ACTION = re.compile(r"\s*\.HOSTNAME\s*")
_HTML_ESCAPES = str.maketrans(
    {
        "\0": "\uFFFD",
        '"': "&#34;",
        "&": "&amp;",
        "'": "&#39;",
        "+": "&#43;",
        "<": "&lt;",
        ">": "&gt;",
    }
)


class ValidationError(Exception):
    """Validation could not confirm that data is being reported."""


class RecipeValidator(Protocol):
    """Validates the installation of a recipe, returning an entity GUID."""

    def validate_recipe(
        self,
        manifest: DiscoveryManifest,
        recipe: OpenInstallationRecipe,
        cancel: threading.Event | None = None,
    ) -> str: ...


class PollingNRQLValidator:
    """Polls NRDB until the query reports a positive count."""

    def __init__(
        self,
        client: NRDBClient,
        account_id: int | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        progress_indicator: ProgressIndicator | None = None,
    ) -> None:
        self.client = client
        self.account_id = account_id
        self.max_attempts = max_attempts
        self.interval = interval
        self.progress_indicator = (
            progress_indicator if progress_indicator is not None else Spinner()
        )

    def validate(self, query: str, cancel: threading.Event | None = None) -> str:
        """Poll until data appears; return the entity GUID found, possibly empty.

        Raises ValidationError when attempts run out or ``cancel`` is set,
        and lets errors from the client propagate.
        """
        indicator = self.progress_indicator
        indicator.start(_PROGRESS_MESSAGE)
        try:
            count = 0
            while True:
                if count == self.max_attempts:
                    indicator.fail("")
                    raise ValidationError("reached max validation attempts")

                try:
                    ok, entity_guid = self._try_validate(query)
                except Exception:
                    indicator.fail("")
                    raise

                count += 1

                if ok:
                    indicator.success("")
                    return entity_guid

                if cancel is not None:
                    if cancel.wait(self.interval):
                        indicator.fail("")
                        raise ValidationError("validation cancelled")
                else:
                    time.sleep(self.interval)
        finally:
            indicator.stop()

    def _try_validate(self, query: str) -> tuple[bool, str]:
        results = self._execute_query(query)
        if not results:
            return False, ""

        first: Mapping[str, Any] = results[0]
        # The query is assumed to use a count aggregate function.
        count = first.get("count")
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            raise ValidationError("query result holds no numeric count")

        if count > 0:
            # Most integrations facet over entityGuid; logs use entity.guids.
            for key in ("entityGuid", "entity.guids"):
                if key in first:
                    return True, str(first[key])
            return True, ""
        return False, ""

    def _execute_query(self, query: str) -> list[Mapping[str, Any]]:
        if not self.account_id:
            raise ValidationError("no account ID found in default profile")
        return list(self.client.query(self.account_id, query))


def substitute_hostname(
    manifest: DiscoveryManifest, recipe: OpenInstallationRecipe
) -> str:
    """Fill ``{{.HOSTNAME}}`` in the recipe's validation NRQL with the host name."""
    template = recipe.validation_nrql
    hostname = manifest.hostname.translate(_HTML_ESCAPES)

    def replace(match: re.Match[str]) -> str:
        action = match.group(1)
        if _HOSTNAME_ACTION.fullmatch(action):
            return hostname
        raise ValueError(f"unsupported template action {{{{{action}}}}}")

    result = _ACTION.sub(replace, template)
    if "{{" in result.replace(hostname, "") if hostname else "{{" in result:
        raise ValueError("unclosed action in validation NRQL")
    return result


class PollingRecipeValidator(PollingNRQLValidator):
    """Validates a recipe by polling NRDB with its validation NRQL."""

    def validate_recipe(
        self,
        manifest: DiscoveryManifest,
        recipe: OpenInstallationRecipe,
        cancel: threading.Event | None = None,
    ) -> str:
        """Poll NRDB for data reported by the recipe; return the entity GUID."""
        query = substitute_hostname(manifest, recipe)
        return self.validate(query, cancel)