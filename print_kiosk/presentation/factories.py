from print_kiosk.config import settings
from print_kiosk.database import AsyncSessionLocal
from print_kiosk.application.interfaces import ObjectStore, ReclamationDispatcher
from print_kiosk.application.pickup_codes import PickupCodeAllocator
from print_kiosk.application.shared_assets import SharedAssetGuard
from print_kiosk.application.reclaim import ReclamationSweeper, RetentionPolicy, InlineReclamationDispatcher
from print_kiosk.infrastructure.unit_of_work import UnitOfWork
from print_kiosk.infrastructure.payment_gateway import RazorpayGateway
from print_kiosk.infrastructure.object_stores import CloudinaryObjectStore, LocalFileObjectStore
from print_kiosk.infrastructure.kafka_producer import KafkaReclamationPublisher

# Один producer на процесс, запускается в lifespan
kafka_publisher = KafkaReclamationPublisher(settings.KAFKA_BOOTSTRAP_SERVERS, settings.RECLAMATION_TOPIC)


def build_unit_of_work() -> UnitOfWork:
    return UnitOfWork(AsyncSessionLocal)


def build_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway(settings.RAZORPAY_BASE_URL, settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)


def build_object_store() -> ObjectStore:
    if settings.OBJECT_STORE == "local":
        return LocalFileObjectStore(settings.UPLOAD_DIR)
    return CloudinaryObjectStore(
        settings.CLOUDINARY_CLOUD_NAME, settings.CLOUDINARY_API_KEY, settings.CLOUDINARY_API_SECRET
    )


def build_code_allocator(uow) -> PickupCodeAllocator:
    return PickupCodeAllocator(uow, max_attempts=settings.PICKUP_CODE_MAX_ATTEMPTS)


def build_sweeper(uow=None) -> ReclamationSweeper:
    uow = uow or build_unit_of_work()
    return ReclamationSweeper(
        uow,
        build_object_store(),
        SharedAssetGuard(uow),
        ttl=settings.ORDER_TTL,
        completed_retention=settings.COMPLETED_RETENTION,
        retention_policy=RetentionPolicy(settings.RETENTION_POLICY),
        reclaim_timeout=settings.RECLAIM_TIMEOUT_SECONDS,
    )


def build_dispatcher(uow=None) -> ReclamationDispatcher:
    if settings.RECLAMATION_MODE == "kafka":
        return kafka_publisher
    return InlineReclamationDispatcher(build_sweeper(uow))
