from dataclasses import dataclass, field

from .channels.base import ChannelAdapter
from .channels.mailgun import MailgunEmailAdapter
from .channels.sunco import SunshineWhatsAppAdapter
from .config import DELIVERY_SKIP_DELIVERED, JWT_SECRET, SUNCO_WEBHOOK_SECRET, ZENDESK_WEBHOOK_SECRET
from .entity_store import EntityStore
from .services.auth_service import AuthService
from .services.delivery import DeliveryWorker
from .services.dispatch import DispatchService
from .services.queue import DispatchQueue
from .services.responses import ResponseService
from .services.surveys import SurveyRepository
from .services.tenancy import TenantService
from .services.webhooks import WebhookService


@dataclass
class Container:
    """Process-wide services, built once at startup and shared by reference."""

    session_factory: object
    store: EntityStore
    queue: DispatchQueue
    surveys: SurveyRepository
    dispatch: DispatchService
    responses: ResponseService
    webhooks: WebhookService
    tenants: TenantService
    auth: AuthService
    worker: DeliveryWorker
    adapters: dict[str, ChannelAdapter] = field(default_factory=dict)


def build_container(
    session_factory,
    *,
    adapters: dict[str, ChannelAdapter] | None = None,
    jwt_secret: str = JWT_SECRET,
    zendesk_secret: str = ZENDESK_WEBHOOK_SECRET,
    sunco_secret: str = SUNCO_WEBHOOK_SECRET,
    skip_delivered: bool = DELIVERY_SKIP_DELIVERED,
    queue: DispatchQueue | None = None,
) -> Container:
    store = EntityStore(session_factory)
    queue = queue or DispatchQueue(session_factory)
    if adapters is None:
        adapters = {"email": MailgunEmailAdapter(), "whatsapp": SunshineWhatsAppAdapter()}
    surveys = SurveyRepository(store)
    tenants = TenantService(store)
    return Container(
        session_factory=session_factory,
        store=store,
        queue=queue,
        surveys=surveys,
        dispatch=DispatchService(store, queue, surveys),
        responses=ResponseService(store, surveys),
        webhooks=WebhookService(store, zendesk_secret=zendesk_secret, sunco_secret=sunco_secret),
        tenants=tenants,
        auth=AuthService(store, tenants, secret=jwt_secret),
        worker=DeliveryWorker(store, queue, adapters, skip_delivered=skip_delivered, max_delay_seconds=queue.max_delay_seconds),
        adapters=adapters,
    )
