from pathlib import Path

from route_optimizer.persistence.filesystem import FileStorage


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="weekly/depot run")

    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path.resolve() / "outputs"
    assert run_dir.name.startswith("weekly_depot_run_")


def test_run_directories_are_unique(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    first = storage.make_run_directory()
    second = storage.make_run_directory()
    assert first != second
    assert first.name.startswith("optimization_")


def test_file_storage_writes_json_and_text(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="route_test")

    summary_path = run_dir / "summary.json"
    route_path = run_dir / "route.csv"

    storage.write_json(summary_path, {"total_distance_km": 12.5})
    storage.write_text(route_path, "sequence,name\r\n1,Hub\r\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "total_distance_km": 12.5\n}'
    assert route_path.read_bytes() == b"sequence,name\r\n1,Hub\r\n"
