"""Tests for table alignment, table writing and null-model snapshots."""

import json

import numpy as np
import pandas as pd
import pytest

from traitlab.common.exceptions import SnapshotError
from traitlab.core.analysis.ses import run_null_model
from traitlab.core.data.alignment import align_species, check_plot_alignment
from traitlab.core.data.writers import (
    load_null_snapshot,
    save_null_snapshot,
    write_table,
)


def test_align_species_intersects_in_abundance_order(caplog):
    traits = pd.DataFrame({"h": [1.0, 2.0, 3.0]}, index=["c", "a", "z"])
    abundance = pd.DataFrame([[1.0, 2.0, 3.0]], index=["p"], columns=["a", "b", "c"])
    q, l_mat = align_species(traits, abundance)

    assert list(q.index) == ["a", "c"]
    assert list(l_mat.columns) == ["a", "c"]
    assert "without trait values" in caplog.text
    assert "absent from the abundance table" in caplog.text


def test_check_plot_alignment():
    left = pd.DataFrame(index=["a", "b"])
    assert check_plot_alignment(left, ["a", "b"]) is True
    assert check_plot_alignment(left, ["b", "a"]) is False
    assert check_plot_alignment(left, ["a", "c"]) is False


def test_write_table_creates_directories(tmp_path):
    path = write_table(pd.DataFrame({"x": [1, 2]}), tmp_path / "deep" / "out.csv", index=False)
    assert path.exists()
    assert pd.read_csv(path)["x"].tolist() == [1, 2]


def test_snapshot_round_trip(tmp_path, integer_community):
    traits, abundance = integer_community
    result = run_null_model(traits, abundance, model="richness", iterations=5, seed=4)
    path = save_null_snapshot(tmp_path / "snap", result)

    assert path.suffix == ".npz"
    restored = load_null_snapshot(path)
    np.testing.assert_array_equal(restored.null, result.null)
    np.testing.assert_allclose(restored.observed.to_numpy(), result.observed.to_numpy())
    assert restored.plots == [str(p) for p in result.plots]
    assert restored.traits == result.traits
    assert restored.model == "richness"
    assert restored.seed == 4


def test_snapshot_keeps_null_model_params(tmp_path, integer_community):
    traits, abundance = integer_community
    result = run_null_model(
        traits, abundance, model="independent_swap", iterations=3, seed=0, n_swaps=10
    )
    assert result.params == {"n_swaps": 10}
    restored = load_null_snapshot(save_null_snapshot(tmp_path / "swap.npz", result))
    assert restored.params == {"n_swaps": 10}


def test_missing_snapshot(tmp_path):
    with pytest.raises(SnapshotError):
        load_null_snapshot(tmp_path / "missing.npz")


def test_snapshot_with_unknown_version(tmp_path):
    path = tmp_path / "old.npz"
    np.savez(
        path,
        observed=np.zeros((1, 1)),
        null=np.zeros((2, 1, 1)),
        metadata=np.array(json.dumps({"format_version": 0})),
    )
    with pytest.raises(SnapshotError):
        load_null_snapshot(path)
