import pytest

from print_kiosk.application.create_order import parse_print_settings
from print_kiosk.domain.exceptions import ValidationError
from print_kiosk.domain.pricing import calculate_amount, calculate_total_pages

from conftest import PRINT_SETTINGS


def test_amount_sums_color_and_bw_pages_times_copies():
    settings = parse_print_settings(PRINT_SETTINGS)

    assert calculate_amount(settings) == 10 * 2 * 1 + 3 * 3 * 2 == 38
    assert calculate_total_pages(settings) == 8


def test_snake_case_page_count_is_accepted():
    settings = parse_print_settings({"files": [{"color": "COLOR", "page_count": 4}]})

    assert calculate_amount(settings) == 40


@pytest.mark.parametrize("raw", [
    None,
    "files",
    {},
    {"files": []},
    {"files": [{"color": "BW", "pageCount": 0}]},
    {"files": [{"color": "BW", "pageCount": 2, "copies": -1}]},
    {"files": [{"color": "SEPIA", "pageCount": 1}]},
])
def test_malformed_print_settings_are_rejected(raw):
    with pytest.raises(ValidationError):
        parse_print_settings(raw)
