import io

import pytest

from nrcli.pipe import (
    PipeInput,
    StdinPipeReader,
    collect_pipe_input,
    json_to_filtered_map,
    read_stdin,
)

SINGLE = """{
				"id": 1,
				"name": "Foo",
				"price": 123,
				"tags": [
					"Bar",
					"Eek"
				],
				"stock": {
					"warehouse": 300,
					"retail": 20
				}
			}"""

ARRAY = """[ 
				{ 
					"id": 1, 
					"name": "Foo", 
					"price": 123, 
					"tags": [ "Bar", "Eek" ], 
					"stock": { 
						"warehouse": 300, 
						"retail": 20
					}
				},
				{ 
					"id": 2, 
					"name": "Bar", 
					"price": 456, 
					"tags": [ "Oop", "Aah" ], 
					"stock": { 
						"warehouse": 450, 
						"retail": 50
					}
				},
				{ 
					"id": 3, 
					"name": "Baz", 
					"price": 789, 
					"tags": [ "Syn", "Ack" ], 
					"stock": { 
						"warehouse": 100, 
						"retail": 75
					}
				}
			]"""

SINGLE_THREE = """{ 
				"id": 3, 
				"name": "Foo", 
				"price": 123, 
				"tags": [ "Bar", "Eek" ], 
				"stock": { 
					"warehouse": 300, 
					"retail": 30
				}
			}"""

INVALID = """{ 
				broken = bad
			}"""

SELECTORS = ["id", "stock.retail"]

SINGLE_ROWS = [{"id": "1", "stock.retail": "20"}]
ARRAY_ROWS = [
    {"id": "1", "stock.retail": "20"},
    {"id": "2", "stock.retail": "50"},
    {"id": "3", "stock.retail": "75"},
]


def _reader(text):
    return StdinPipeReader(input=io.StringIO(text))


@pytest.mark.parametrize(
    "text, expected",
    [
        (
            SINGLE,
            '{ "id": 1, "name": "Foo", "price": 123, "tags": [ "Bar", "Eek" ], '
            '"stock": { "warehouse": 300, "retail": 20 } }',
        ),
        (
            ARRAY,
            '[ { "id": 1, "name": "Foo", "price": 123, "tags": [ "Bar", "Eek" ], '
            '"stock": { "warehouse": 300, "retail": 20 } }, { "id": 2, "name": "Bar", '
            '"price": 456, "tags": [ "Oop", "Aah" ], "stock": { "warehouse": 450, '
            '"retail": 50 } }, { "id": 3, "name": "Baz", "price": 789, "tags": '
            '[ "Syn", "Ack" ], "stock": { "warehouse": 100, "retail": 75 } } ]',
        ),
    ],
)
def test_stdin_pipe_reader(text, expected):
    assert _reader(text).read_pipe() == expected


def test_json_to_filtered_map_empty_input():
    with pytest.raises(ValueError, match="invalid JSON received by stdin"):
        json_to_filtered_map("", SELECTORS)


@pytest.mark.parametrize("text, expected", [(SINGLE, SINGLE_ROWS), (ARRAY, ARRAY_ROWS)])
def test_json_to_filtered_map(text, expected):
    assert json_to_filtered_map(text, SELECTORS) == expected


def test_json_to_filtered_map_value_forms():
    text = '{"price": 1.50, "ok": true, "none": null, "tags": ["a", "b"], "name": "x"}'
    rows = json_to_filtered_map(text, ["price", "ok", "none", "tags.1", "tags.#", "name", "gone"])
    assert rows == [
        {"price": "1.50", "ok": "true", "none": "", "tags.1": "b", "tags.#": "2", "name": "x"}
    ]


def test_read_stdin_invalid_json():
    with pytest.raises(ValueError, match="invalid JSON received by stdin"):
        read_stdin(_reader(INVALID), SELECTORS)


@pytest.mark.parametrize("text, expected", [(SINGLE, SINGLE_ROWS), (ARRAY, ARRAY_ROWS)])
def test_read_stdin(text, expected):
    assert read_stdin(_reader(text), SELECTORS) == expected


@pytest.mark.parametrize(
    "text, present, expected",
    [
        ("", True, {}),
        (INVALID, True, {}),
        (SINGLE, False, {}),
        (SINGLE, True, {"id": ["1"], "stock.retail": ["20"]}),
        (ARRAY, True, {"id": ["1", "2", "3"], "stock.retail": ["20", "50", "75"]}),
    ],
)
def test_collect_pipe_input(text, present, expected):
    assert collect_pipe_input(_reader(text), present, SELECTORS) == expected


def test_pipe_input_load_once():
    pipe = PipeInput(reader=_reader(SINGLE), predicate=lambda: True)
    pipe.load(SELECTORS)
    assert pipe.values == {"id": ["1"], "stock.retail": ["20"]}


def test_pipe_input_load_twice_keeps_first_values():
    calls = []

    class CountingReader:
        def read_pipe(self):
            calls.append(1)
            return SINGLE_THREE

    pipe = PipeInput(reader=CountingReader(), predicate=lambda: True)
    pipe.load(SELECTORS)
    pipe.load(SELECTORS)
    assert pipe.values == {"id": ["3"], "stock.retail": ["30"]}
    assert len(calls) == 1


@pytest.mark.parametrize(
    "values, expected_value, expected_ok",
    [
        (None, None, False),
        ({}, None, False),
        ({"id": ["3"], "stock.retail": ["30"]}, ["3"], True),
    ],
)
def test_get_and_exists(values, expected_value, expected_ok):
    pipe = PipeInput(values=values)
    assert pipe.get("id") == expected_value
    assert pipe.exists("id") is expected_ok