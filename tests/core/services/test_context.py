import pandas as pd
import pytest

from traitlab.common.exceptions import ConfigurationError
from traitlab.core.services.context import AnalysisContext, as_frame


def test_tables_and_results_as_sources(community):
    context = AnalysisContext(tables=community)
    context.results["cwm"] = pd.DataFrame({"sla": [1.0]})

    assert context.get_frame("traits") is community.traits
    assert context.get_frame("cwm").shape == (1, 1)
    assert context.available_sources() == [
        "environment",
        "abundance",
        "traits",
        "individuals",
        "cwm",
    ]


def test_unknown_source(community):
    context = AnalysisContext(tables=community)
    with pytest.raises(ConfigurationError) as exc_info:
        context.get_frame("cvm")
    assert exc_info.value.details["requested"] == "cvm"


def test_snapshot_path(community, tmp_path):
    context = AnalysisContext(tables=community, snapshots_dir=tmp_path)
    assert context.snapshot_path() is None
    context.current_step = "ses"
    assert context.snapshot_path() == tmp_path / "ses.npz"


def test_as_frame_rejects_plain_values():
    with pytest.raises(TypeError):
        as_frame({"a": 1})
