"""
Tests for graphdrive.logging module.
"""

from __future__ import annotations

from graphdrive.logging import (
    DefaultLogger,
    SilentLogger,
    get_global_logger,
    get_logger,
    set_global_logger,
)


def test_default_logger_levels(capsys):
    """Test that verbose and debug output depend on the flags."""
    logger = DefaultLogger(verbose=True, debug=False)
    logger.step(1, 3, "Creating upload session...")
    logger.verbose("UPLOAD", "PUT bytes 0-9/10")
    logger.debug("HTTP", "hidden")
    logger.warning("UPLOAD", "no item id")

    out = capsys.readouterr().out
    assert "[1/3] Creating upload session..." in out
    assert "[UPLOAD] PUT bytes 0-9/10" in out
    assert "hidden" not in out
    assert "[UPLOAD] WARNING: no item id" in out


def test_debug_implies_verbose(capsys):
    """Test that debug mode prints verbose messages too."""
    logger = get_logger(debug=True)
    logger.verbose("DELTA", "page 1")
    logger.debug("HTTP", "GET url")

    out = capsys.readouterr().out
    assert "[DELTA] page 1" in out
    assert "[HTTP] GET url" in out


def test_silent_logger_prints_nothing(capsys):
    """Test that SilentLogger suppresses every level."""
    logger = SilentLogger()
    logger.step(1, 1, "x")
    logger.verbose("A", "x")
    logger.debug("A", "x")
    logger.warning("A", "x")
    assert capsys.readouterr().out == ""


def test_global_logger_roundtrip():
    """Test that set_global_logger changes what library code sees."""
    logger = DefaultLogger(verbose=True)
    set_global_logger(logger)
    assert get_global_logger() is logger
