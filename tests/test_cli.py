"""End-to-end tests for the ``apspx`` command."""

import json

import pytest

from apspx import cli, parallel
from apspx.generator import load_edge_list_txt

CHAIN = "4 3\n0 1 1\n1 2 1\n2 3 1\n"


@pytest.fixture
def chain_file(tmp_path):
    path = tmp_path / "chain.txt"
    path.write_text(CHAIN)
    return path


class TestSuccess:
    @pytest.mark.parametrize(
        "flags,label",
        [(["-s"], "Sequential time"), (["-n", "-t", "2"], "Naive time"), (["-b", "-l", "5", "-t", "2"], "Block time")],
    )
    def test_report(self, capsys, flags, label) -> None:
        assert cli.main(flags + ["-v", "20", "-e", "40", "--seed", "1"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert "Number of vertices: 20" in out
        assert "Number of edges: 40" in out
        assert f"Graph memory footprint: {20 * 20 * 8}" in out
        assert any(line.startswith(f"{label}: ") and line.endswith(" ns") for line in out)
        assert "Graph before Floyd-Warshall:" not in out

    def test_blocked_reports_every_phase(self, capsys) -> None:
        assert cli.main(["-b", "-v", "8", "-e", "10", "-l", "4"]) == 0
        out = capsys.readouterr().out
        for label in cli.PHASE_LABELS.values():
            assert f"{label}: " in out
        assert "Block length: 4" in out

    def test_print_chain_from_file(self, capsys, chain_file) -> None:
        code = cli.main(["-b", "-l", "2", "-t", "2", "-p", "--verify", "--check-writes", "--graph", str(chain_file)])
        assert code == 0
        out = capsys.readouterr().out
        before, after = out.split("Graph after Floyd-Warshall:\n")
        assert "Graph before Floyd-Warshall:\n0 1 N N\nN 0 1 N\nN N 0 1\nN N N 0\n" in before
        assert after.startswith("0 1 2 3\nN 0 1 2\nN N 0 1\nN N N 0\n")
        assert "Number of vertices: 4" in after
        assert "Number of edges: 3" in after

    def test_threads_clamped_silently(self, capsys, monkeypatch) -> None:
        monkeypatch.setattr(parallel.os, "cpu_count", lambda: 2)
        assert cli.main(["-n", "-v", "6", "-e", "8", "-t", "64"]) == 0
        captured = capsys.readouterr()
        assert "Number of threads: 2" in captured.out
        assert captured.err == ""

    def test_save_graph_round_trip(self, capsys, tmp_path) -> None:
        path = tmp_path / "saved.txt"
        assert cli.main(["-s", "-v", "7", "-e", "9", "--seed", "3", "--save-graph", str(path)]) == 0
        matrix, m = load_edge_list_txt(path)
        assert (matrix.n, m) == (7, 9)

    def test_metrics_and_plot(self, capsys, tmp_path) -> None:
        metrics_path = tmp_path / "metrics.json"
        plot_path = tmp_path / "dist.png"
        code = cli.main(
            ["-b", "-v", "12", "-e", "30", "-l", "4", "--seed", "5",
             "--metrics-out", str(metrics_path), "--plot", str(plot_path)]
        )
        assert code == 0
        data = json.loads(metrics_path.read_text())
        assert data["kernel"] == "blocked"
        assert data["n"] == 12
        assert data["edges"] == 30
        assert data["seed"] == 5
        assert set(data["phase_ns"]) == {"dependent", "partial", "independent"}
        assert data["peak_mib"] >= 0
        assert plot_path.stat().st_size > 0

    def test_profile_report_on_stderr(self, capsys) -> None:
        assert cli.main(["-s", "-v", "5", "-e", "6", "--profile"]) == 0
        assert "function calls" in capsys.readouterr().err


class TestConfigurationErrors:
    def test_no_mode(self, capsys) -> None:
        assert cli.main(["-v", "5", "-e", "6"]) == 1
        assert "Specify mode of execution" in capsys.readouterr().err

    def test_too_many_edges(self, capsys) -> None:
        assert cli.main(["-s", "-v", "3", "-e", "7"]) == 1
        assert "exceeds" in capsys.readouterr().err

    def test_block_length_above_vertices(self, capsys) -> None:
        assert cli.main(["-b", "-v", "4", "-e", "4", "-l", "8"]) == 1

    def test_block_length_not_a_divisor(self, capsys) -> None:
        assert cli.main(["-b", "-v", "10", "-e", "20", "-l", "3"]) == 1
        captured = capsys.readouterr()
        assert "divisible" in captured.err
        assert "Number of vertices" not in captured.out

    def test_block_length_checked_for_every_mode(self, capsys) -> None:
        assert cli.main(["-s", "-v", "10", "-e", "20", "-l", "3"]) == 1

    def test_modes_are_exclusive(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["-s", "-b"])
        assert exc.value.code == 2

    def test_zero_threads_rejected_by_parser(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["-s", "-t", "0"])
        assert exc.value.code == 2

    def test_bad_graph_file(self, capsys, tmp_path) -> None:
        path = tmp_path / "bad.txt"
        path.write_text("3 1\n0 5 1\n")
        assert cli.main(["-s", "--graph", str(path)]) == 1

    def test_missing_graph_file(self, capsys, tmp_path) -> None:
        assert cli.main(["-s", "--graph", str(tmp_path / "nope.txt")]) == 1

    def test_json_log_line(self, capsys) -> None:
        assert cli.main(["-s", "-v", "3", "-e", "7", "--log-json"]) == 1
        record = json.loads(capsys.readouterr().err.strip())
        assert record["level"] == "error"
        assert record["event"] == "config_error"


class TestVerification:
    def test_failed_verification_exit_code(self, capsys, monkeypatch) -> None:
        monkeypatch.setattr(cli, "verify_converged", lambda matrix, edges: ["broken"])
        assert cli.main(["-s", "-v", "5", "-e", "6", "--verify"]) == 70
        captured = capsys.readouterr()
        assert "verify_failed" in captured.err
        assert "Number of vertices" not in captured.out
