import pytest

from apspx.kernels import SequentialKernel
from apspx.profiling import ProfileSession
from apspx.timing import Timestamps


class TestTimestamps:
    def test_render_in_order(self) -> None:
        ts = Timestamps()
        ts.mark("Block time", 1500)
        ts.mark("Dependent phase time", 200)
        assert ts.render() == "Block time: 1500 ns\nDependent phase time: 200 ns"

    def test_average(self) -> None:
        ts = Timestamps()
        assert ts.average() == 0.0
        ts.mark("a", 10)
        ts.mark("b", 20)
        assert ts.average() == 15.0


class TestProfileSession:
    def test_report_after_run(self, chain_matrix, tmp_path) -> None:
        dump = tmp_path / "kernel.prof"
        with ProfileSession(dump_path=str(dump)) as prof:
            SequentialKernel().run(chain_matrix)
        assert "_relax" in prof.report(lines=50)
        assert dump.exists()

    def test_report_before_finish(self) -> None:
        prof = ProfileSession()
        with pytest.raises(RuntimeError):
            prof.report()
