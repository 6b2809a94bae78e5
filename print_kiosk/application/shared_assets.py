class SharedAssetGuard:
    """Проверяет, ссылается ли на файл еще какой-то заказ (перепечатка)"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def is_shared(self, asset_ref: str, excluding_order: str) -> bool:
        async with self._uow() as uow:
            # Достаточно двух совпадений: сам заказ и еще один
            holders = await uow.orders.query_by_asset_ref(asset_ref, limit=2)
        return any(order.id != excluding_order for order in holders)
