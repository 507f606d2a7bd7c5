import json

import pytest

from selective_tsp.cli import main


def test_construct_from_single_start(csv_instance, capsys):
    main(["construct", str(csv_instance), "--strategy", "greedy_cycle", "--start", "0"])
    out = capsys.readouterr().out
    assert "Route: [0," in out
    assert "greedy_cycle" in out


def test_construct_with_improvement_writes_json(csv_instance, tmp_path):
    output = tmp_path / "construct.json"
    main(["construct", str(csv_instance), "--strategy", "regret", "--improve", "--output", str(output)])
    data = json.loads(output.read_text())
    assert data["runs"] == 12
    assert len(data["best_route"]) == 7


@pytest.mark.parametrize("method", ["ls", "msls", "ils", "lns"])
def test_search_methods(csv_instance, capsys, method):
    main(
        [
            "search",
            str(csv_instance),
            "--method",
            method,
            "--iterations",
            "3",
            "--time-limit",
            "30",
            "--max-iterations",
            "3",
        ]
    )
    out = capsys.readouterr().out
    assert "Total cost:" in out


def test_search_with_move_list(csv_instance, capsys):
    main(["--verbose", "search", str(csv_instance), "--method", "msls", "--iterations", "2", "--move-list"])
    assert "Total cost:" in capsys.readouterr().out


def test_experiment_writes_results(csv_instance, tmp_path, capsys):
    out_dir = tmp_path / "results"
    main(
        [
            "experiment",
            "--data-root",
            str(csv_instance.parent),
            "--runs",
            "1",
            "--start-nodes",
            "2",
            "--parts",
            "constructions",
            "--output-dir",
            str(out_dir),
        ]
    )
    assert (out_dir / "tiny_greedy_cycle.json").exists()
    assert "done in" in capsys.readouterr().out


def test_experiment_without_instances(tmp_path):
    with pytest.raises(RuntimeError, match="No instances"):
        main(["experiment", "--data-root", str(tmp_path)])
