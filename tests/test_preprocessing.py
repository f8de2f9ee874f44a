import numpy as np                             # NumPy for array assertions
import pytest                                  # Pytest framework for testing and assertions

from src.data.encoder import encode, encode_record          # Feature encoder under test
from src.data.parser import parse_text                      # Parser feeding the encoder
from src.data.schema import BINARY_COLUMNS, FEATURE_COLUMNS, N_FEATURES, column_index
from src.errors import EmptyDataset            # Raised when fitting on nothing
from src.models import normalizer              # Min/max normalizer under test


def test_encode_basic_scenario():
    table = parse_text("age,gender,diagnosis\n30,M,dengue\n40,F,malaria\n")  # Two labelled rows

    dataset = encode(table.headers, table.rows)

    assert dataset.row_count == 2              # Both rows kept
    assert dataset.features.shape == (2, N_FEATURES)         # Fixed-width vectors
    assert list(dataset.features[:, column_index("gender")]) == [1.0, 0.0]  # M -> 1, F -> 0
    assert list(dataset.features[:, column_index("age")]) == [30.0, 40.0]   # Numeric pass-through
    assert list(dataset.labels) == [0, 1]      # dengue -> 0, malaria -> 1
    assert dataset.has_labels is True


def test_encode_skips_short_and_empty_rows():
    headers = ["age", "gender", "diagnosis"]
    rows = [
        ["30", "M", "dengue"],                 # Valid row
        ["40"],                                # Fewer cells than headers (parsed from "40,,")
        ["", "", ""],                          # Every cell empty
        [],                                    # No cells at all
    ]

    dataset = encode(headers, rows)

    assert dataset.row_count == 1              # Only the valid row is counted
    assert len(dataset.features) == len(dataset.labels) == 1


def test_encode_row_from_text_with_empty_fields_is_skipped():
    table = parse_text("age,gender,diagnosis\n30,M,dengue\n40,,\n")  # Second row has empty cells

    dataset = encode(table.headers, table.rows)

    assert dataset.row_count == 1              # "40,," is dropped by the row filter


def test_encode_missing_columns_and_non_numeric_values():
    dataset = encode(["AGE", "Platelets"], [["abc", "120.5"]])   # Case-insensitive headers

    vector = dataset.features[0]
    assert vector[column_index("age")] == 0.0  # Non-numeric -> 0
    assert vector[column_index("platelets")] == 120.5   # Header matched regardless of case
    assert vector[column_index("urea")] == 0.0          # Absent schema column -> 0
    assert not np.isnan(dataset.features).any()         # Never NaN
    assert dataset.has_labels is False         # No diagnosis column
    assert len(dataset.labels) == 0


def test_encode_residence_and_flags():
    headers = ["residence", "fever", "rash", "hematocrit"]
    rows = [
        ["Urban", "1", "0", "42"],
        ["urbana", "2", "", "inf"],            # Out-of-range flag, empty flag, infinite lab
        ["rural", "yes", "1", "40"],
    ]

    features = encode(headers, rows).features

    assert list(features[:, column_index("residence")]) == [1.0, 1.0, 0.0]
    assert list(features[:, column_index("fever")]) == [1.0, 1.0, 0.0]   # Flags stay 0/1
    assert list(features[:, column_index("rash")]) == [0.0, 0.0, 1.0]
    assert list(features[:, column_index("hematocrit")]) == [42.0, 0.0, 40.0]  # inf -> 0


def test_encode_unknown_diagnosis_defaults_to_zero():
    dataset = encode(["age", "diagnosis"], [["30", "typhoid"], ["31", "LEPTOSPIROSIS"]])

    assert list(dataset.labels) == [0, 2]      # Unknown -> 0, lookup ignores case
    assert dataset.diagnoses == ["typhoid", "LEPTOSPIROSIS"]     # Raw text kept for evaluation


def test_encode_binary_positions_are_zero_or_one(labelled_csv):
    table = parse_text(labelled_csv)

    features = encode(table.headers, table.rows).features

    binary_idx = [column_index(c) for c in BINARY_COLUMNS]
    assert set(np.unique(features[:, binary_idx])) <= {0.0, 1.0}


def test_encode_record_partial_input():
    vector = encode_record({"Age": 30, "gender": "m", "fever": True, "AST": "55.5", "junk": 1})

    assert vector.shape == (N_FEATURES,)       # Always 53 entries
    assert vector[column_index("age")] == 30.0
    assert vector[column_index("gender")] == 1.0
    assert vector[column_index("fever")] == 1.0        # Booleans map to 1/0
    assert vector[column_index("AST")] == 55.5
    assert vector[column_index("urea")] == 0.0         # Missing field -> 0
    assert len(FEATURE_COLUMNS) == N_FEATURES


def test_normalizer_maps_training_range_to_unit_interval():
    X = np.array([
        [1.0, 10.0, 5.0],
        [3.0, 20.0, 5.0],                      # Last column is constant
        [2.0, 15.0, 5.0],
    ])

    params = normalizer.fit(X)
    scaled = normalizer.apply(X, params)

    assert np.all((scaled >= 0.0) & (scaled <= 1.0))   # Everything inside [0, 1]
    assert list(scaled[:, 0]) == [0.0, 1.0, 0.5]       # Min -> 0, max -> 1
    assert list(scaled[:, 2]) == [0.0, 0.0, 0.0]       # Degenerate column -> 0
    assert np.all(params.max >= params.min)


def test_normalizer_reuses_training_params():
    params = normalizer.fit(np.array([[0.0, 1.0], [10.0, 1.0]]))

    scaled = normalizer.apply(np.array([20.0, 7.0]), params)   # Single vector, outside range

    assert scaled.shape == (1, 2)
    assert scaled[0, 0] == pytest.approx(2.0)  # No refit, no clipping
    assert scaled[0, 1] == 0.0                 # Degenerate stays 0 at inference


def test_normalizer_errors():
    with pytest.raises(EmptyDataset):          # Nothing to fit on
        normalizer.fit(np.zeros((0, 3)))

    params = normalizer.fit(np.ones((2, 3)))
    with pytest.raises(ValueError):            # Width mismatch
        normalizer.apply(np.ones((1, 4)), params)
