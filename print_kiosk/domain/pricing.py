from print_kiosk.domain.models import ColorMode, PrintSettings

# Цена за страницу в минимальных единицах
UNIT_PRICES = {
    ColorMode.COLOR: 10,
    ColorMode.BW: 3,
}


def calculate_amount(print_settings: PrintSettings) -> int:
    """Стоимость: цена страницы * страницы * копии, сумма по всем файлам"""
    return sum(
        UNIT_PRICES[f.color] * f.page_count * f.copies
        for f in print_settings.files
    )


def calculate_total_pages(print_settings: PrintSettings) -> int:
    return sum(f.page_count * f.copies for f in print_settings.files)
