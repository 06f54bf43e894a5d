from datetime import date

import pytest

from adshot.cli import parse_args
from adshot.models import DeviceType, VisualizationType


def test_date_range_expands_inclusive():
    args = parse_args(["--start-date", "2025-01-30", "--end-date", "2025-02-02"])
    assert args.dates == [date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 2)]
    assert not args.single_job


def test_explicit_dates_win():
    args = parse_args(["--date", "2025-01-05", "--date", "2025-01-07", "--start-date", "2025-01-01"])
    assert args.dates == [date(2025, 1, 5), date(2025, 1, 7)]


def test_single_job_flags():
    args = parse_args(["--device", "mobile", "--visualization", "B", "--zocalo", "https://cdn.example/z.png"])
    assert args.single_job
    assert args.creative_urls == {"zocalo": "https://cdn.example/z.png"}


def test_invalid_combinations_are_rejected():
    with pytest.raises(ValueError):
        parse_args(["--start-date", "2025-02-02", "--end-date", "2025-01-01"])
    with pytest.raises(ValueError):
        parse_args(["--lateral", "https://cdn.example/l.png"])
    with pytest.raises(ValueError):
        parse_args(["--max-retries", "0"])


def test_single_job_is_built_with_resolved_urls():
    args = parse_args(
        [
            "--device", "desktop", "--visualization", "A",
            "--lateral", "/uploads/l.png",
            "--public-base-url", "https://files.example",
            "--target-date", "2025-01-06",
        ]
    )
    assert args.job.device_type is DeviceType.DESKTOP
    assert args.job.visualization_type is VisualizationType.A
    assert dict(args.job.creative_urls) == {"lateral": "https://files.example/uploads/l.png"}
    assert args.job.target_date == date(2025, 1, 6)
    assert parse_args(["--date", "2025-01-05"]).job is None


def test_bad_single_job_exits_with_usage_error(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_args(["--device", "mobile", "--visualization", "D"])
    assert exc.value.code == 2
    assert "only defined for desktop" in capsys.readouterr().err

    with pytest.raises(SystemExit) as exc:
        parse_args(["--device", "desktop", "--target-date", "2999-01-01"])
    assert exc.value.code == 2
    assert "in the future" in capsys.readouterr().err
