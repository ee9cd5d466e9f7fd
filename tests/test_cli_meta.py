from __future__ import annotations

import json

import pytest

from cli.main import main


def _args(out_dir, *extra: str) -> list[str]:
    return [
        "--seed",
        "MistyForge",
        "--out",
        str(out_dir),
        "--particles",
        "80",
        "--w",
        "48",
        "--h",
        "32",
        *extra,
    ]


def test_runtime_fields_only_in_meta_json(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"
    assert main(_args(out_dir, "--overwrite")) == 0

    base = out_dir / "mistyforge" / "48x32"
    meta = json.loads((base / "meta.json").read_text(encoding="utf-8"))
    deterministic_meta = json.loads((base / "deterministic_meta.json").read_text(encoding="utf-8"))

    assert meta["generation_seconds"] >= 0.0
    assert "generated_at_utc" in meta
    assert meta["original_seed"] == "MistyForge"

    assert "generation_seconds" not in deterministic_meta
    assert "generated_at_utc" not in deterministic_meta
    assert "original_seed" not in deterministic_meta

    assert deterministic_meta["canonical_seed"] == "mistyforge"
    assert deterministic_meta["config"]["particle_num"] == 80
    metrics = deterministic_meta["metrics"]
    for key in ("site_count", "land_fraction", "outlet_count", "landmass_components", "max_elevation"):
        assert key in metrics
    assert metrics["outlet_count"] >= 1

    for name in ("elevation.npy", "elevation_16.png", "hillshade.png", "land_mask.png"):
        assert (base / name).exists(), name


def test_no_json_skips_metadata(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"
    assert main(_args(out_dir, "--no-json")) == 0

    base = out_dir / "mistyforge" / "48x32"
    assert (base / "elevation.npy").exists()
    assert not (base / "meta.json").exists()


def test_overwrite_cleans_stale_outputs(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"
    assert main(_args(out_dir)) == 0
    base = out_dir / "mistyforge" / "48x32"
    stale = base / "stale.png"
    stale.write_bytes(b"")

    with pytest.raises(FileExistsError):
        main(_args(out_dir))

    assert main(_args(out_dir, "--overwrite")) == 0
    assert not stale.exists()
    assert (base / "elevation.npy").exists()


@pytest.mark.parametrize(
    "extra",
    [
        ["--land-ratio", "1.5"],
        ["--max-slope", "0"],
        ["--extent", "0", "10"],
        ["--fault-scale", "nan"],
        ["--erodibility-power", "inf"],
    ],
)
def test_invalid_options_exit_with_usage_error(tmp_path, extra: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(_args(tmp_path / "out", *extra))
    assert exc.value.code == 2


def test_invalid_seed_exits_with_usage_error(tmp_path) -> None:
    with pytest.raises(SystemExit):
        main(["--seed", "not a seed", "--out", str(tmp_path / "out")])
