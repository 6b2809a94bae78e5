import logging
import uuid
from datetime import timedelta
from typing import Optional, Callable
from pydantic import BaseModel, ValidationError as PydanticValidationError

from print_kiosk.domain.models import Order, OrderStatus, PrintSettings, utcnow
from print_kiosk.domain.exceptions import ValidationError, DuplicateError, InvalidStateError, PreconditionFailed
from print_kiosk.domain.pricing import calculate_amount, calculate_total_pages
from print_kiosk.application.pickup_codes import PickupCodeAllocator


logger = logging.getLogger(__name__)


def generate_order_id() -> str:
    return f"ORD_{uuid.uuid4().hex}"


def parse_print_settings(raw) -> PrintSettings:
    """Проверка настроек печати: есть файлы, страницы и копии > 0"""
    if raw is None:
        raise ValidationError("Не переданы настройки печати")
    if isinstance(raw, PrintSettings):
        settings = raw
    else:
        if not isinstance(raw, dict):
            raise ValidationError("Некорректные настройки печати")
        try:
            settings = PrintSettings.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Некорректные настройки печати: {e.error_count()} ошибок")

    if not settings.files:
        raise ValidationError("В заказе нет файлов")
    for f in settings.files:
        if f.page_count <= 0:
            raise ValidationError(f"Некорректное число страниц: {f.page_count}")
        if f.copies <= 0:
            raise ValidationError(f"Некорректное число копий: {f.copies}")
    return settings


class CreateOrderDTO(BaseModel):
    print_settings: Optional[dict] = None
    user_id: str = "guest"
    payment_ref: Optional[str] = None
    asset_refs: list[str] = []
    prepaid: bool = False
    reprint_of: Optional[str] = None


class CreateOrderUseCase:
    def __init__(
        self,
        unit_of_work,
        code_allocator: PickupCodeAllocator,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable = utcnow,
    ):
        self._uow = unit_of_work
        self._codes = code_allocator
        self._ttl = ttl
        self._clock = clock

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        print_settings = parse_print_settings(order_data.print_settings)
        logger.info(f"Создание заказа для пользователя {order_data.user_id}, файлов: {len(print_settings.files)}")

        now = self._clock()
        order = Order(
            id=generate_order_id(),
            status=OrderStatus.PENDING_PAYMENT if order_data.payment_ref else OrderStatus.CREATED,
            print_settings=print_settings,
            amount=calculate_amount(print_settings),
            total_pages=calculate_total_pages(print_settings),
            user_id=order_data.user_id,
            asset_refs=list(order_data.asset_refs),
            payment_ref=order_data.payment_ref,
            reprint_of=order_data.reprint_of,
            created_at=now,
            expires_at=now + self._ttl,
            updated_at=now,
        )
        return await self._insert(order, prepaid=order_data.prepaid)

    async def _insert(self, order: Order, prepaid: bool) -> Order:
        async with self._uow() as uow:
            try:
                await uow.orders.create(order)
            except DuplicateError:
                raise ValidationError(f"Заказ {order.id} уже существует")
            await uow.commit()
        logger.info(f"Заказ создан: {order.id} ({order.status.value}), сумма {order.amount}")

        # Предоплаченный путь: CREATED -> ACTIVE сразу с кодом выдачи
        if prepaid and order.status == OrderStatus.CREATED:
            try:
                order = await self._codes.allocate(
                    order.id, OrderStatus.CREATED, {"status": OrderStatus.ACTIVE}
                )
            except PreconditionFailed:
                raise InvalidStateError(f"Заказ {order.id} изменился до активации")
            logger.info(f"Заказ {order.id} активирован без онлайн-оплаты")
        return order
