import json
from unittest import mock

import pytest

from py333 import SOLVED, CubeState, SolverConfig, load_config, parse_moves
from py333 import cli
from py333.tables import METADATA_FILE


def test_solve_scramble(tables, capsys):
    assert cli.main(["solve", "--scramble", "R U R' U'", "--timeout", "1"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "Solution (" in out
    assert "Phase 1 (" in out


def test_solve_json(tables, capsys):
    assert cli.main(["solve", "--scramble", "F R2", "--json"]) == cli.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["success"] is True
    state = CubeState.from_scramble("F R2")
    assert state.apply_sequence(parse_moves(data["moves"])).is_solved()


def test_solve_state_file(tables, tmp_path, capsys):
    path = tmp_path / "state.json"
    path.write_text(json.dumps(CubeState.from_scramble("L D2 B'").to_dict()))
    assert cli.main(["solve", "--state", str(path), "--json"]) == cli.EXIT_OK
    assert json.loads(capsys.readouterr().out)["length"] <= 3


def test_solve_invalid_state(tables, tmp_path, capsys):
    data = SOLVED.to_dict()
    data["edge_orient"][0] = 1
    path = tmp_path / "state.json"
    path.write_text(json.dumps(data))
    assert cli.main(["solve", "--state", str(path)]) == cli.EXIT_BAD_INPUT
    assert "edge flip" in capsys.readouterr().err


def test_solve_malformed_state_file(tables, tmp_path, capsys):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"corner_perm": [0, 1, 2]}))
    assert cli.main(["solve", "--state", str(path)]) == cli.EXIT_BAD_INPUT
    assert "error" in capsys.readouterr().err


def test_solve_bad_move(tables, capsys):
    assert cli.main(["solve", "--scramble", "R X"]) == cli.EXIT_BAD_INPUT
    assert "'X'" in capsys.readouterr().err


def test_solve_depth_exhausted(tables, capsys):
    argv = ["solve", "--scramble", "R U F D", "--phase1-max-depth", "1", "--phase2-max-depth", "1"]
    assert cli.main(argv) == cli.EXIT_UNSOLVED
    assert "No solution" in capsys.readouterr().out


def test_requires_a_command():
    with pytest.raises(SystemExit):
        cli.main([])
    with pytest.raises(SystemExit):
        cli.main(["solve", "--scramble", "R", "--state", "x.json"])


def test_config_file_and_overrides(tmp_path):
    path = tmp_path / "solver.yaml"
    path.write_text("timeout: 2.5\nmax_extra_depth: 1\nuse_pair_tables: false\n")

    args = cli.build_parser().parse_args(["solve", "--scramble", "R", "--config", str(path), "--timeout", "0.5"])
    config = cli.solver_config_from_args(args)
    assert config.timeout == 0.5
    assert config.max_extra_depth == 1
    assert config.use_pair_tables is False
    assert config.phase1_max_depth == SolverConfig().phase1_max_depth

    assert load_config(path).timeout == 2.5


def test_invalid_config_values(tmp_path):
    path = tmp_path / "solver.yaml"
    path.write_text("timeout: -1\n")
    with pytest.raises(ValueError):
        load_config(path)
    assert cli.main(["solve", "--scramble", "R", "--phase1-max-depth", "-2"]) == cli.EXIT_BAD_INPUT


def test_build_tables(tables, tmp_path, capsys):
    out_dir = tmp_path / "tables"
    with mock.patch.object(cli, "build_tables", return_value=tables) as build:
        assert cli.main(["build-tables", "--output-dir", str(out_dir), "--workers", "2"]) == cli.EXIT_OK
    build.assert_called_once_with(workers=2, verbose=True)
    assert (out_dir / METADATA_FILE).exists()
    assert (out_dir / "twist_move.npy").exists()
    assert "Saved" in capsys.readouterr().out


def test_evaluate(tables, capsys):
    argv = ["evaluate", "--num-cubes", "3", "--scramble-moves", "6", "--seed", "5",
            "--max-extra-depth", "0", "--timeout", "0.5"]
    assert cli.main(argv) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "Solved: 3/3" in out
    assert out.count("✓") == 3


def test_solve_state_file_with_floats(tables, tmp_path, capsys):
    data = SOLVED.to_dict()
    data["corner_orient"] = [0.9] * 8
    path = tmp_path / "state.json"
    path.write_text(json.dumps(data))
    assert cli.main(["solve", "--state", str(path)]) == cli.EXIT_BAD_INPUT
    assert "corner_orient" in capsys.readouterr().err


def test_timeout_help_mentions_cost(capsys, monkeypatch):
    monkeypatch.setenv("COLUMNS", "1000")
    with pytest.raises(SystemExit):
        cli.main(["solve", "--help"])
    assert "time per solve" in capsys.readouterr().out
