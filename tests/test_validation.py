import threading

import pytest

from nrcli.recipe import DiscoveryManifest, OpenInstallationRecipe
from nrcli.validation import (
    PollingNRQLValidator,
    PollingRecipeValidator,
    ValidationError,
    substitute_hostname,
)

EMPTY_RESULTS = [{"count": 0.0}]
NON_EMPTY_RESULTS = [{"count": 1.0}]
ACCOUNT_ID = 12345


class MockNRDBClient:
    def __init__(self):
        self.attempts = 0
        self.queries = []
        self.before = []
        self.after = []
        self.n = 0
        self.error = None

    def return_results_after_n_attempts(self, before, after, n):
        self.before, self.after, self.n = before, after, n

    def throw_error(self, message):
        self.error = message

    def query(self, account_id, nrql):
        self.attempts += 1
        self.queries.append((account_id, nrql))
        if self.error is not None:
            raise RuntimeError(self.error)
        if self.n and self.attempts >= self.n:
            return self.after
        return self.before


class MockProgressIndicator:
    def __init__(self):
        self.events = []

    def start(self, msg):
        self.events.append("start")

    def success(self, msg):
        self.events.append("success")

    def fail(self, msg):
        self.events.append("fail")

    def stop(self):
        self.events.append("stop")


def make_validator(client, **kwargs):
    pi = MockProgressIndicator()
    v = PollingRecipeValidator(
        client, account_id=ACCOUNT_ID, progress_indicator=pi, **kwargs
    )
    return v, pi


def test_validate():
    c = MockNRDBClient()
    c.return_results_after_n_attempts(EMPTY_RESULTS, NON_EMPTY_RESULTS, 1)
    v, pi = make_validator(c)
    guid = v.validate_recipe(DiscoveryManifest(), OpenInstallationRecipe())
    assert guid == ""
    assert c.attempts == 1
    assert pi.events == ["start", "success", "stop"]
    assert c.queries[0][0] == ACCOUNT_ID


def test_validate_pass_after_n_attempts():
    c = MockNRDBClient()
    v, _ = make_validator(c, max_attempts=5, interval=0.01)
    c.return_results_after_n_attempts(EMPTY_RESULTS, NON_EMPTY_RESULTS, 5)
    v.validate_recipe(DiscoveryManifest(), OpenInstallationRecipe())
    assert c.attempts == 5


def test_validate_fail_after_n_attempts():
    c = MockNRDBClient()
    v, pi = make_validator(c, max_attempts=3, interval=0.01)
    with pytest.raises(ValidationError, match="reached max validation attempts"):
        v.validate_recipe(DiscoveryManifest(), OpenInstallationRecipe())
    assert c.attempts == 3
    assert pi.events == ["start", "fail", "stop"]


def test_validate_fail_after_max_attempts():
    c = MockNRDBClient()
    c.return_results_after_n_attempts(EMPTY_RESULTS, NON_EMPTY_RESULTS, 2)
    v, _ = make_validator(c, max_attempts=1, interval=0.01)
    with pytest.raises(ValidationError):
        v.validate_recipe(DiscoveryManifest(), OpenInstallationRecipe())
    assert c.attempts == 1


def test_validate_fail_if_cancelled():
    c = MockNRDBClient()
    c.return_results_after_n_attempts(EMPTY_RESULTS, NON_EMPTY_RESULTS, 2)
    v, _ = make_validator(c, interval=1.0)
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ValidationError, match="validation cancelled"):
        v.validate_recipe(DiscoveryManifest(), OpenInstallationRecipe(), cancel)
    assert c.attempts == 1


def test_validate_query_error():
    c = MockNRDBClient()
    c.throw_error("test error")
    v, pi = make_validator(c)
    with pytest.raises(RuntimeError) as info:
        v.validate_recipe(DiscoveryManifest(), OpenInstallationRecipe())
    assert str(info.value) == "test error"
    assert "fail" in pi.events


def test_validate_returns_entity_guid():
    c = MockNRDBClient()
    c.return_results_after_n_attempts([], [{"count": 2.0, "entityGuid": "abc"}], 1)
    v, _ = make_validator(c)
    assert v.validate("SELECT count(*) FROM X") == "abc"


def test_validate_returns_logs_entity_guid():
    c = MockNRDBClient()
    c.return_results_after_n_attempts([], [{"count": 1.0, "entity.guids": "xyz"}], 1)
    v, _ = make_validator(c)
    assert v.validate("SELECT count(*) FROM Log") == "xyz"


def test_validate_requires_account_id():
    c = MockNRDBClient()
    v = PollingNRQLValidator(c, progress_indicator=MockProgressIndicator())
    with pytest.raises(ValidationError, match="no account ID"):
        v.validate("SELECT 1")
    assert c.attempts == 0


def test_substitute_hostname():
    recipe = OpenInstallationRecipe(
        validation_nrql="SELECT count(*) from SystemSample where hostname like '{{.HOSTNAME}}'"
    )
    manifest = DiscoveryManifest(hostname="myhost")
    assert (
        substitute_hostname(manifest, recipe)
        == "SELECT count(*) from SystemSample where hostname like 'myhost'"
    )


def test_substitute_hostname_uses_query_for_validation():
    c = MockNRDBClient()
    c.return_results_after_n_attempts([], NON_EMPTY_RESULTS, 1)
    v, _ = make_validator(c)
    recipe = OpenInstallationRecipe(validation_nrql="host = '{{ .HOSTNAME }}'")
    v.validate_recipe(DiscoveryManifest(hostname="box"), recipe)
    assert c.queries == [(ACCOUNT_ID, "host = 'box'")]


def test_substitute_hostname_rejects_unknown_action():
    recipe = OpenInstallationRecipe(validation_nrql="x = '{{.OTHER}}'")
    with pytest.raises(ValueError):
        substitute_hostname(DiscoveryManifest(hostname="h"), recipe)