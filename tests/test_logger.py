import io
import json

import pytest

from apspx.logger import NoopLogger, StdLogger


def test_plain_format_and_level_filter() -> None:
    buf = io.StringIO()
    log = StdLogger(level="info", stream=buf)
    log.debug("hidden", x=1)
    log.info("kernel_done", kernel="blocked", wall_ns=12)
    log.error("bare")
    assert buf.getvalue().splitlines() == ["info kernel_done kernel=blocked wall_ns=12", "error bare"]


def test_json_format() -> None:
    buf = io.StringIO()
    StdLogger(level="debug", json_fmt=True, stream=buf).warning("threads_clamped", requested=64)
    assert json.loads(buf.getvalue()) == {"level": "warning", "event": "threads_clamped", "requested": 64}


def test_unknown_level() -> None:
    with pytest.raises(ValueError):
        StdLogger(level="trace")


def test_noop_logger_accepts_everything() -> None:
    log = NoopLogger()
    log.debug("a", x=1)
    log.error("b")
