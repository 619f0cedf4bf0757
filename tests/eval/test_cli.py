import csv
import json
import os

from eval.cli import build_parser, format_table, main


def _compare(*extra):
    return main(["compare", "--rule-set", "bank", "--trials", "200", "--seed", "1", "--no-progress",
                 "--strategies", "first-roll,threshold:15", *extra])


def test_compare_prints_table(capsys):
    assert _compare() == 0
    out = capsys.readouterr().out
    assert "Simulating 200 games" in out
    assert "Avg Points" in out
    assert "first-roll" in out
    assert "threshold:15" in out


def test_compare_writes_outputs(tmp_path):
    out_dir = tmp_path / "exp"
    assert _compare("--out", str(out_dir)) == 0

    for fname in ("config.json", "summary.json", "results.csv"):
        assert (out_dir / fname).exists()

    summary = json.loads((out_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["rule_set"] == "bank"
    assert [r["strategy"] for r in summary["results"]] == ["first-roll", "threshold:15"]

    with open(out_dir / "results.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert all(int(r["trials"]) == 200 for r in rows)


def test_compare_from_config_file(tmp_path, capsys):
    cfg = tmp_path / "exp.json"
    cfg.write_text(json.dumps({
        "name": "from-file",
        "rule_set": "biscuits",
        "trials": 50,
        "strategies": ["one-min", "all-zero/big-min"],
        "seed": 3,
    }), encoding="utf-8")
    assert main(["compare", "--config", str(cfg), "--no-progress"]) == 0
    out = capsys.readouterr().out
    assert "all-zero/big-min" in out
    assert "Simulating 50 games" in out


def test_same_seed_same_output(capsys):
    _compare()
    first = capsys.readouterr().out
    _compare()
    second = capsys.readouterr().out
    strip = lambda s: [line.rsplit(None, 1)[0] for line in s.splitlines() if line.startswith(("first-roll", "threshold"))]
    assert strip(first) == strip(second)


def test_configuration_errors_exit_with_2(capsys):
    assert _compare("--param", "ceiling=0") == 2
    assert "error:" in capsys.readouterr().err
    assert main(["compare", "--rule-set", "bank", "--trials", "0", "--no-progress"]) == 2
    assert main(["compare", "--rule-set", "bank", "--trials", "10", "--no-progress",
                 "--strategies", "one-min"]) == 2
    assert main(["compare", "--rule-set", "bank", "--trials", "10", "--no-progress",
                 "--param", "ceiling"]) == 2


def test_list(capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "bank:" in out
    assert "biscuits:" in out
    assert "all-zero/prio-min" in out


def test_parser_defaults():
    args = build_parser().parse_args(["-vv", "compare"])
    assert args.verbose == 2
    assert args.trials is None
    assert args.plot is False


def test_format_table_orders_by_average():
    rows = [
        {"strategy": "low", "avg_score": 1.5, "min_score": 0, "gravies": 0, "max_score": 3, "elapsed_s": 0.01},
        {"strategy": "high", "avg_score": 9.25, "min_score": 2, "gravies": 4, "max_score": 30, "elapsed_s": 2.5},
    ]
    lines = format_table(rows).splitlines()
    assert lines[0].startswith("Strategy")
    assert lines[2].startswith("high")
    assert lines[3].startswith("low")
    assert "9.25" in lines[2]
    assert "2.50s" in lines[2]
    assert "10.00ms" in lines[3]
