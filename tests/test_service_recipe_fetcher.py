import pytest

from nrcli.recipe import DiscoveryManifest, MatchedProcess, OpenInstallationRecipe
from nrcli.recipes import RecipeNotFoundError
from nrcli.service_recipe_fetcher import (
    RECIPE_SEARCH_QUERY,
    RECOMMENDATIONS_QUERY,
    ServiceRecipeFetcher,
    create_install_target,
    create_recipe_search_input,
    create_recommendations_input,
)


class FakeNerdGraphClient:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def query_with_response(self, query, variables):
        self.calls.append((query, variables))
        return self.response


def wrap_recipes(results):
    return {"docs": {"openInstallation": {"recipeSearch": {"results": results}}}}


def wrap_recommendations(results):
    return {"docs": {"openInstallation": {"recommendations": {"results": results}}}}


def test_fetch_recipes_keeps_duplicates():
    raw = [
        {"id": "MAo=", "name": "test", "processMatch": ["test"]},
        {"id": "MAo=", "name": "test", "processMatch": ["test"]},
        {"id": "MAo=", "name": "othername", "processMatch": ["test"]},
    ]
    client = FakeNerdGraphClient(wrap_recipes(raw))
    recipes = ServiceRecipeFetcher(client).fetch_recipes(DiscoveryManifest())

    expected = [
        OpenInstallationRecipe(id="MAo=", name="test", process_match=["test"]),
        OpenInstallationRecipe(id="MAo=", name="test", process_match=["test"]),
        OpenInstallationRecipe(id="MAo=", name="othername", process_match=["test"]),
    ]
    assert len(recipes) == 3
    assert recipes == expected
    assert client.calls[0][0] == RECIPE_SEARCH_QUERY
    assert "name" not in client.calls[0][1]["criteria"]


def test_fetch_recommendations_removes_duplicate_names():
    raw = [
        {"id": "MAo=", "name": "testing1"},
        {"id": "non-zero", "name": "testing1"},
        {"id": "non-zero2", "name": "testing2"},
    ]
    client = FakeNerdGraphClient(wrap_recommendations(raw))
    recipes = ServiceRecipeFetcher(client).fetch_recommendations(DiscoveryManifest())

    assert len(recipes) == 2
    assert [(r.id, r.name) for r in recipes] == [("MAo=", "testing1"), ("non-zero2", "testing2")]
    assert client.calls[0][0] == RECOMMENDATIONS_QUERY


def test_fetch_recipe_single_result():
    client = FakeNerdGraphClient(wrap_recipes([{"name": "mysql", "install": "version: 3\n"}]))
    recipe = ServiceRecipeFetcher(client).fetch_recipe(DiscoveryManifest(os="linux"), "mysql")
    assert recipe.name == "mysql"
    assert recipe.install == "version: 3\n"
    assert client.calls[0][1] == {
        "criteria": {"name": "mysql", "installTarget": {"os": "LINUX", "platformVersion": ""}}
    }


def test_fetch_recipe_multiple_results_raises():
    client = FakeNerdGraphClient(wrap_recipes([{"name": "a"}, {"name": "a"}]))
    with pytest.raises(ValueError, match="more than 1 result found for friendly name a"):
        ServiceRecipeFetcher(client).fetch_recipe(DiscoveryManifest(), "a")


@pytest.mark.parametrize(
    "name, fragment",
    [
        ("infrastructure-agent-installer", "infrastructure agent was unable"),
        ("logs-integration", "logs was unable"),
        ("custom", "custom was unable to be installed for your operating system"),
    ],
)
def test_fetch_recipe_no_results_raises(name, fragment):
    client = FakeNerdGraphClient(wrap_recipes([]))
    with pytest.raises(RecipeNotFoundError, match=fragment):
        ServiceRecipeFetcher(client).fetch_recipe(DiscoveryManifest(), name)


def test_missing_results_are_empty():
    client = FakeNerdGraphClient({"docs": None})
    assert ServiceRecipeFetcher(client).fetch_recipes(DiscoveryManifest()) == []


def test_create_install_target_uppercases():
    manifest = DiscoveryManifest(
        os="linux", platform="ubuntu", platform_version="20.04", kernel_arch="amd64"
    )
    assert create_install_target(manifest) == {
        "os": "LINUX",
        "platform": "UBUNTU",
        "platformVersion": "20.04",
    }


def test_create_install_target_omits_empty_platform():
    assert create_install_target(DiscoveryManifest(os="darwin")) == {
        "os": "DARWIN",
        "platformVersion": "",
    }


def test_create_recipe_search_input():
    criteria = create_recipe_search_input(DiscoveryManifest(os="windows"), "iis")
    assert criteria == {"name": "iis", "installTarget": {"os": "WINDOWS", "platformVersion": ""}}


def test_create_recommendations_input_with_processes():
    manifest = DiscoveryManifest(os="linux")
    manifest.add_matched_process(MatchedProcess(command="mysqld", matching_pattern="mysql"))
    manifest.add_matched_process(MatchedProcess(command="nginx", matching_pattern="nginx"))
    criteria = create_recommendations_input(manifest)
    assert criteria["processDetails"] == [{"name": "mysql"}, {"name": "nginx"}]
    assert criteria["installTarget"]["os"] == "LINUX"


def test_create_recommendations_input_without_processes():
    assert create_recommendations_input(DiscoveryManifest())["processDetails"] is None