from datetime import date

import pytest

from adshot.errors import InvalidJobError
from adshot.models import DeviceType, InsertionResult, RenderJob, SlotOutcome, VisualizationType


def test_render_job_coerces_strings_and_drops_empty_urls():
    job = RenderJob("Desktop", "b", {"lateral": "https://cdn.example/l.png", "ancho": ""})
    assert job.device_type is DeviceType.DESKTOP
    assert job.visualization_type is VisualizationType.B
    assert dict(job.creative_urls) == {"lateral": "https://cdn.example/l.png"}
    assert not job.is_historical
    assert RenderJob(DeviceType.MOBILE, target_date=date(2025, 1, 1)).is_historical


def test_visualization_d_is_desktop_only():
    with pytest.raises(ValueError):
        RenderJob(DeviceType.MOBILE, VisualizationType.D)


def test_unknown_slots_and_types_are_rejected():
    with pytest.raises(InvalidJobError):
        RenderJob(DeviceType.DESKTOP, VisualizationType.A, {"sidebar": "https://cdn.example/s.png"})
    with pytest.raises(InvalidJobError):
        RenderJob("tablet")
    with pytest.raises(InvalidJobError):
        RenderJob(DeviceType.DESKTOP, "E")


def test_insertion_result_reports_failed_slots():
    result = InsertionResult(
        {
            "lateral": SlotOutcome.from_page({"found": True, "inserted": True, "position": {"left": "1px", "top": "2px"}}),
            "ancho": SlotOutcome.from_page({"found": True, "inserted": False, "error": "image failed to load"}),
        }
    )
    assert not result.all_inserted
    assert result.failed_slots == ["ancho"]
    assert result.as_dict()["lateral"]["position"] == {"left": "1px", "top": "2px"}
