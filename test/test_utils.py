from configparser import ConfigParser
import logging
import pytest  # noqa: F401
import numpy as np
import polars as pl

from matern_lscale.utils import (
    ColumnNotFoundError,
    ConfigParserMultiValues,
    adjust_small_negative,
    as_search_axis,
    check_cols,
    init_logging,
    on_boundary,
)


def test_adjust_small_negative() -> None:  # noqa: D103
    vals = np.array([1.0, -1e-12, 0.0, -0.5])

    with pytest.warns(UserWarning):
        out = adjust_small_negative(vals)

    assert np.all(out == [1.0, 0.0, 0.0, -0.5])  # noqa: S101
    assert vals[1] == -1e-12  # noqa: S101
    return None


def test_check_cols() -> None:  # noqa: D103
    df = pl.DataFrame({"a": [1], "b": [2]})
    check_cols(df, ["a", "b"])
    with pytest.raises(ColumnNotFoundError, match="c, d"):
        check_cols(df, ["a", "c", "d"])
    return None


def test_as_search_axis() -> None:  # noqa: D103
    assert np.all(as_search_axis(2, "x") == [2.0])  # noqa: S101
    assert np.all(as_search_axis([1, 2], "x") == [1.0, 2.0])  # noqa: S101
    assert np.all(  # noqa: S101
        as_search_axis([-0.5, 0.5], "x", positive=False) == [-0.5, 0.5]
    )
    with pytest.raises(ValueError):
        as_search_axis([], "x")
    with pytest.raises(ValueError):
        as_search_axis([1.0, np.nan], "x")
    with pytest.raises(ValueError):
        as_search_axis([0.0, 1.0], "x")
    with pytest.raises(ValueError):
        as_search_axis(np.ones((2, 2)), "x")
    return None


def test_on_boundary() -> None:  # noqa: D103
    assert on_boundary(0, 5)  # noqa: S101
    assert on_boundary(4, 5)  # noqa: S101
    assert not on_boundary(2, 5)  # noqa: S101
    assert on_boundary(0, 1)  # noqa: S101
    return None


def test_config_multi_values() -> None:  # noqa: D103
    config = ConfigParser(
        strict=False,
        empty_lines_in_values=False,
        dict_type=ConfigParserMultiValues,
        converters={"list": ConfigParserMultiValues.getlist},
    )
    config.read_string("[grid]\nlscale = 100\n  300\n  500\nnu = 1.5\n")

    assert config.getlist("grid", "lscale") == [  # noqa: S101 # type: ignore
        "100",
        "300",
        "500",
    ]
    assert config.getfloat("grid", "nu") == 1.5  # noqa: S101
    return None


def test_init_logging(tmp_path) -> None:  # noqa: D103
    log_file = tmp_path / "test.log"
    init_logging(file=str(log_file), level="info")
    logging.info("hello")
    logging.debug("hidden")
    logging.shutdown()

    content = log_file.read_text()
    assert "INFO" in content  # noqa: S101
    assert "hello" in content  # noqa: S101
    assert "hidden" not in content  # noqa: S101
    with pytest.raises(ValueError):
        init_logging(level="verbose")
    logging.captureWarnings(False)
    return None
