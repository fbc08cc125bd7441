"""Fetching recipes from the recipe service through NerdGraph."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from nrcli.recipe import (
    INFRA_AGENT_RECIPE_NAME,
    LOGGING_RECIPE_NAME,
    DiscoveryManifest,
    OpenInstallationRecipe,
)
from nrcli.recipes import RecipeNotFoundError

log = logging.getLogger(__name__)

_RECIPE_RESULT_FRAGMENT = """
		id
		name
		displayName
		description
		dependencies
		stability
		repository
		install
		installTargets {
			type
			os
			platform
			platformFamily
			platformVersion
			kernelVersion
			kernelArch
		}
		keywords
		processMatch
		logMatch {
			name
			file
			pattern
			systemd
			attributes {
				logtype
			}
		}
		inputVars {
			name
			prompt
			secret
			default
		}
		validationNrql
		preInstall {
			info
		}
		postInstall {
			info
		}
		successLinkConfig {
			type
			filter
		}
	"""

RECIPE_SEARCH_QUERY = (
    """
	query RecipeSearch($criteria: OpenInstallationRecipeSearchCriteria){
		docs {
			openInstallation {
				recipeSearch(criteria: $criteria) {
					results {
						"""
    + _RECIPE_RESULT_FRAGMENT
    + """
					}
				}
			}
		}
	}"""
)

RECOMMENDATIONS_QUERY = (
    """
	query Recommendations($criteria: OpenInstallationRecommendationsInput){
		docs {
			openInstallation {
				recommendations(criteria: $criteria) {
					results {
						"""
    + _RECIPE_RESULT_FRAGMENT
    + """
					}
				}
			}
		}
	}"""
)


class NerdGraphClient(Protocol):
    """A client that runs a GraphQL query and returns the decoded response data."""

    def query_with_response(
        self, query: str, variables: Mapping[str, Any]
    ) -> Mapping[str, Any]: ...


def create_install_target(manifest: DiscoveryManifest) -> dict[str, str]:
    """Build the install target criteria for a manifest."""
    target = {"os": manifest.os.upper()}
    platform = manifest.platform.upper()
    if platform:
        target["platform"] = platform
    target["platformVersion"] = manifest.platform_version.upper()
    return target


def create_recipe_search_input(
    manifest: DiscoveryManifest, friendly_name: str
) -> dict[str, Any]:
    """Build the search criteria for a recipe by name."""
    criteria: dict[str, Any] = {}
    if friendly_name:
        criteria["name"] = friendly_name
    criteria["installTarget"] = create_install_target(manifest)
    return criteria


def create_recommendations_input(manifest: DiscoveryManifest) -> dict[str, Any]:
    """Build the recommendation criteria, including discovered processes."""
    details = [{"name": process.matching_pattern} for process in manifest.processes]
    return {
        "installTarget": create_install_target(manifest),
        "processDetails": details or None,
    }


def _extract_results(response: Any, section: str) -> list[OpenInstallationRecipe]:
    node = response
    for key in ("docs", "openInstallation", section, "results"):
        if not isinstance(node, Mapping):
            return []
        node = node.get(key)
    return [OpenInstallationRecipe.from_mapping(item) for item in node or []]


class ServiceRecipeFetcher:
    """Fetches recipes from the recipe service."""

    def __init__(self, client: NerdGraphClient) -> None:
        self.client = client

    def fetch_recipe(
        self, manifest: DiscoveryManifest, friendly_name: str
    ) -> OpenInstallationRecipe:
        """Return the single recipe with the given name for this host."""
        log.debug("fetching recipe %s", friendly_name)
        variables = {"criteria": create_recipe_search_input(manifest, friendly_name)}
        response = self.client.query_with_response(RECIPE_SEARCH_QUERY, variables)
        results = _extract_results(response, "recipeSearch")

        if not results:
            if friendly_name == INFRA_AGENT_RECIPE_NAME:
                raise RecipeNotFoundError(
                    "infrastructure agent was unable to be installed for your "
                    "operating system. For additional installation options "
                    "please see the documentation."
                )
            if friendly_name == LOGGING_RECIPE_NAME:
                raise RecipeNotFoundError(
                    "logs was unable to be installed for your operating system. "
                    "For additional installation options please see the documentation."
                )
            raise RecipeNotFoundError(
                f"{friendly_name} was unable to be installed for your operating system"
            )

        if len(results) > 1:
            raise ValueError(f"more than 1 result found for friendly name {friendly_name}")

        return results[0]

    def fetch_recommendations(
        self, manifest: DiscoveryManifest
    ) -> list[OpenInstallationRecipe]:
        """Return the recommended recipes, keeping the first of each name."""
        variables = {"criteria": create_recommendations_input(manifest)}
        response = self.client.query_with_response(RECOMMENDATIONS_QUERY, variables)

        seen: set[str] = set()
        recipes: list[OpenInstallationRecipe] = []
        for recipe in _extract_results(response, "recommendations"):
            if recipe.name in seen:
                continue
            seen.add(recipe.name)
            recipes.append(recipe)
        return recipes

    def fetch_recipes(self, manifest: DiscoveryManifest) -> list[OpenInstallationRecipe]:
        """Return every recipe available for the host."""
        variables = {"criteria": {"installTarget": create_install_target(manifest)}}
        response = self.client.query_with_response(RECIPE_SEARCH_QUERY, variables)
        return _extract_results(response, "recipeSearch")