import hashlib
import hmac
import httpx
import logging
from typing import Optional

from print_kiosk.domain.exceptions import PaymentServiceError
from print_kiosk.application.interfaces import PaymentGateway

logger = logging.getLogger(__name__)


class RazorpayGateway(PaymentGateway):
    def __init__(self, base_url: str, key_id: str, key_secret: str, currency: str = "INR",
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base_url = base_url.rstrip("/")
        self._key_id = key_id
        self._key_secret = key_secret
        self._currency = currency
        self._transport = transport

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        """HMAC-SHA256 от "order_id|payment_id" секретом ключа"""
        if not (order_ref and payment_ref and signature and self._key_secret):
            return False
        expected = hmac.new(
            self._key_secret.encode(),
            f"{order_ref}|{payment_ref}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def create_order(self, amount: int, receipt: str) -> dict:
        # Сумма в пайсах
        return await self._post("/orders", {
            "amount": amount * 100,
            "currency": self._currency,
            "receipt": receipt,
        })

    async def refund(self, payment_id: str, amount: Optional[int] = None) -> dict:
        payload = {"amount": amount * 100} if amount else {}
        return await self._post(f"/payments/{payment_id}/refund", payload)

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}{path}",
                    json=payload,
                    auth=(self._key_id, self._key_secret),
                    timeout=30.0
                )

                if response.status_code == 200:
                    return response.json()
                else:
                    raise PaymentServiceError(f"Razorpay ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Razorpay ошибка подключения: {e}")
            raise PaymentServiceError(f"Razorpay не доступен: {str(e)}")
