# nrcli

Building blocks for an observability command-line tool:

- installation recipes: data models, YAML parsing, and matching recipes against a discovered host (`nrcli.models`, `nrcli.recipe`);
- recipe fetchers that read recipes from a local directory, a single file or URL, or a recipe search service (`nrcli.recipes`, `nrcli.service_recipe_fetcher`);
- a poller that runs a NRQL query until data appears (`nrcli.validation`);
- reading piped JSON input and picking out fields with dotted selectors (`nrcli.pipe`);
- JSON, text-table and YAML output (`nrcli.output`);
- progress indicators for the terminal (`nrcli.ux`);
- small helpers such as `struct_to_map`, `make_range` and `base64_encode` (`nrcli.utils`).

## Installation

```
pip install .
```

To run the tests, install with the `test` extra:

```
pip install ".[test]"
pytest
```

## Recipes

```python
from nrcli.recipe import DiscoveryManifest, parse_recipe

recipe = parse_recipe("""
name: infrastructure-agent-installer
installTargets:
  - type: host
    os: linux
    platform: debian
keywords: [infra]
validationNrql: "SELECT count(*) FROM SystemSample WHERE hostname = '{{.HOSTNAME}}'"
""")

manifest = DiscoveryManifest(os="linux", platform="debian")
matching = manifest.constrain_recipes([recipe])
```

`parse_recipe` accepts `install` either as a mapping, which is turned back into YAML
text, or as a string. `OpenInstallationRecipe.from_mapping` builds a recipe from data that
has already been decoded.

`constrain_recipes` checks each entry in `installTargets` on its own and ignores case. An
empty field in a target matches any value. A recipe is included once for every target
that matches the manifest, and a recipe with no targets is never included.

## Fetching recipes

`LocalRecipeFetcher` reads every `.yml` and `.yaml` file under a directory. Files that
cannot be read or parsed are logged and skipped.

```python
from nrcli.recipes import LocalRecipeFetcher, RecipeNotFoundError

fetcher = LocalRecipeFetcher(path="./recipes")
try:
    recipe = fetcher.fetch_recipe(manifest, "infrastructure-agent-installer")
except RecipeNotFoundError:
    ...
```

`RecipeFileFetcher` loads a single recipe with `load_recipe_file(filename)` or
`fetch_recipe_file(url)`. A response whose status is not 2xx raises `ConnectionError`.
Both the HTTP getter and the file reader can be passed in.

`ServiceRecipeFetcher` in `nrcli.service_recipe_fetcher` sends GraphQL queries
(`RECIPE_SEARCH_QUERY`, `RECOMMENDATIONS_QUERY`) to any object that follows the
`NerdGraphClient` protocol, which has a `query_with_response(query, variables)` method.
`fetch_recommendations` keeps only the first recipe of each name.

## Validating a recipe

`PollingRecipeValidator` in `nrcli.validation` puts the manifest's host name into the
recipe's `{{.HOSTNAME}}` placeholder. It then polls an `NRDBClient` (any object with
`query(account_id, nrql)`) until the first result row has a positive `count`. It returns
the row's `entityGuid` or `entity.guids` value, or an empty string when the row has
neither.

```python
from nrcli.validation import PollingRecipeValidator, ValidationError

validator = PollingRecipeValidator(client, account_id=12345, max_attempts=10, interval=2.0)
guid = validator.validate_recipe(manifest, recipe)
```

A `ValidationError` is raised when no account ID was given, when the maximum number of
attempts is reached, or when the optional `cancel` event (`threading.Event`) is set.
Errors raised by the client are passed on unchanged.

## Piped input

```python
from nrcli import pipe

pipe.get_input(["id", "stock.retail"])
if pipe.exists("id"):
    ids = pipe.get("id")
```

Standard input is read only once and only when it is not a terminal. A single JSON object
counts as a list of one. For each selector, `get` returns the text value from every piped
object. `PipeInput` does the same with a reader and a predicate that you supply.

## Output

```python
from nrcli.output import Format, set_format, print_output

set_format(Format.parse("yaml"))
print_output({"name": "example"})
```

The formats are `JSON`, `Text` and `YAML`; `Format.parse` falls back to JSON for a name it
does not know. Text output prints strings as they are. A list of records is printed as a
table with one row per record, and a single record as a Field/Value table. `Output` can
be created with its own format, width and stream. `print_json`, `print_text`,
`print_yaml` and `printf` use the shared instance.

## Progress indicators

`PlainProgress` prints one line for each start, success or failure. `Spinner` animates
on a terminal. When debug logging is enabled it logs the message instead. Both follow
the `ProgressIndicator` protocol.

## What is not included

The package has no command-line entry point. It also has no client for the GraphQL or
NRDB services: the fetchers and validators expect the caller to provide objects that
follow the `NerdGraphClient` and `NRDBClient` protocols. Recipes are parsed and matched,
but the package does not run them.