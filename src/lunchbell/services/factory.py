"""
Simple factory for service singletons.

The HTTP app, the Temporal activities and the CLI all call
`ServiceFactory.get_*()` instead of wiring services themselves, so a process
holds exactly one registry per snapshot file and one client per provider.

Each getter builds its service on first use from `get_settings()`, picking
the real provider adapter when credentials are configured and the
logging-only stand-in otherwise. Tests replace the class-level cache, either
by assigning the attributes directly or through `override()`, and call
`reset()` afterwards.
"""

import logging

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter

from lunchbell.config import DispatchBackendKind, Settings
from lunchbell.services.backends import DispatchBackend, LocalDispatchBackend, TemporalDispatchBackend
from lunchbell.services.binding import ChannelBindingProvider, TwilioNotifyBindingProvider
from lunchbell.services.console import (
    ConsoleBindingProvider,
    ConsoleDisplaySender,
    ConsoleSlackSender,
    ConsoleSmsSender,
)
from lunchbell.services.dispatcher import BatchDispatcher
from lunchbell.services.displays import DisplayRegistry
from lunchbell.services.lunch import LunchService
from lunchbell.services.menu import Cater2MeClient, MenuCache, MenuRefresher
from lunchbell.services.registry import SubscriberRegistry
from lunchbell.services.senders import (
    DisplaySender,
    SlackSender,
    SlackWebSender,
    SmsSender,
    TwilioDisplaySender,
    TwilioNotifySender,
)
from lunchbell.services.signup import SignupService
from lunchbell.services.storage import JsonFileStore

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Lazily creates and caches service instances (class-level singletons)."""

    _settings: Settings | None = None
    _binding_provider: ChannelBindingProvider | None = None
    _slack_sender: SlackSender | None = None
    _sms_sender: SmsSender | None = None
    _display_sender: DisplaySender | None = None
    _registry: SubscriberRegistry | None = None
    _displays: DisplayRegistry | None = None
    _menu_cache: MenuCache | None = None
    _menu_refresher: MenuRefresher | None = None
    _dispatcher: BatchDispatcher | None = None
    _backend: DispatchBackend | None = None
    _signup: SignupService | None = None
    _lunch: LunchService | None = None

    @classmethod
    def get_settings(cls) -> Settings:
        if cls._settings is None:
            cls._settings = Settings.from_env()
        return cls._settings

    @classmethod
    def get_binding_provider(cls) -> ChannelBindingProvider:
        if cls._binding_provider is None:
            s = cls.get_settings()
            if s.notify_configured:
                cls._binding_provider = TwilioNotifyBindingProvider(
                    s.twilio_account_sid,
                    s.twilio_auth_token,
                    s.twilio_notify_service_sid,
                    timeout_seconds=s.http_timeout_seconds,
                )
            else:
                logger.warning("Twilio Notify not configured, bindings are logged only")
                cls._binding_provider = ConsoleBindingProvider()
        return cls._binding_provider

    @classmethod
    def get_slack_sender(cls) -> SlackSender:
        if cls._slack_sender is None:
            s = cls.get_settings()
            if s.slack_token:
                cls._slack_sender = SlackWebSender(s.slack_token, timeout_seconds=s.http_timeout_seconds)
            else:
                logger.warning("SLACK_TOKEN not set, Slack messages are logged only")
                cls._slack_sender = ConsoleSlackSender()
        return cls._slack_sender

    @classmethod
    def get_sms_sender(cls) -> SmsSender:
        if cls._sms_sender is None:
            s = cls.get_settings()
            if s.notify_configured and s.twilio_messaging_service_sid:
                cls._sms_sender = TwilioNotifySender(
                    s.twilio_account_sid,
                    s.twilio_auth_token,
                    s.twilio_notify_service_sid,
                    s.twilio_messaging_service_sid,
                    timeout_seconds=s.http_timeout_seconds,
                )
            else:
                logger.warning("Twilio Notify not configured, SMS messages are logged only")
                cls._sms_sender = ConsoleSmsSender()
        return cls._sms_sender

    @classmethod
    def get_display_sender(cls) -> DisplaySender:
        if cls._display_sender is None:
            s = cls.get_settings()
            if s.display_signal_configured:
                cls._display_sender = TwilioDisplaySender(
                    s.twilio_account_sid,
                    s.twilio_auth_token,
                    s.twilio_messaging_service_sid,
                    s.display_phone,
                    timeout_seconds=s.http_timeout_seconds,
                )
            else:
                cls._display_sender = ConsoleDisplaySender()
        return cls._display_sender

    @classmethod
    def get_registry(cls) -> SubscriberRegistry:
        if cls._registry is None:
            store = JsonFileStore(cls.get_settings().users_path, indent=3)
            cls._registry = SubscriberRegistry(store, cls.get_binding_provider())
        return cls._registry

    @classmethod
    def get_displays(cls) -> DisplayRegistry:
        if cls._displays is None:
            cls._displays = DisplayRegistry(JsonFileStore(cls.get_settings().displays_path, indent=2))
        return cls._displays

    @classmethod
    def get_menu_cache(cls) -> MenuCache:
        if cls._menu_cache is None:
            cls._menu_cache = MenuCache()
        return cls._menu_cache

    @classmethod
    def get_menu_refresher(cls) -> MenuRefresher | None:
        """None when Cater2Me is not configured: lunch goes out without a menu."""
        if cls._menu_refresher is None:
            s = cls.get_settings()
            if not s.cater2me_configured:
                return None
            client = Cater2MeClient(
                s.cater2me_client_id,
                s.cater2me_user_id,
                s.cater2me_profile_ids,
                timezone=s.timezone,
                timeout_seconds=s.http_timeout_seconds,
            )
            cls._menu_refresher = MenuRefresher(
                client, cls.get_menu_cache(), cron=s.menu_cron, timezone=s.timezone
            )
        return cls._menu_refresher

    @classmethod
    def get_dispatcher(cls) -> BatchDispatcher:
        if cls._dispatcher is None:
            cls._dispatcher = BatchDispatcher(
                cls.get_slack_sender(), cls.get_sms_sender(), cls.get_display_sender()
            )
        return cls._dispatcher

    @classmethod
    async def get_backend(cls) -> DispatchBackend:
        """Async because the Temporal backend has to connect first."""
        if cls._backend is None:
            s = cls.get_settings()
            if s.dispatch_backend is DispatchBackendKind.TEMPORAL:
                client = await Client.connect(s.temporal_address, data_converter=pydantic_data_converter)
                cls._backend = TemporalDispatchBackend(client, s.temporal_task_queue)
            else:
                cls._backend = LocalDispatchBackend(cls.get_dispatcher())
        return cls._backend

    @classmethod
    def get_signup_service(cls) -> SignupService:
        if cls._signup is None:
            cls._signup = SignupService(cls.get_registry())
        return cls._signup

    @classmethod
    async def get_lunch_service(cls) -> LunchService:
        if cls._lunch is None:
            s = cls.get_settings()
            cls._lunch = LunchService(
                cls.get_registry(),
                cls.get_displays(),
                cls.get_menu_cache(),
                await cls.get_backend(),
                batch_size=s.batch_size,
                cooldown_seconds=s.cooldown_seconds,
            )
        return cls._lunch

    @classmethod
    def override(cls, **services: object) -> None:
        """Pre-seed the cache, e.g. `override(settings=..., binding_provider=fake)`."""
        for name, service in services.items():
            attribute = f"_{name}"
            if not hasattr(cls, attribute):
                raise AttributeError(f"ServiceFactory has no service {name!r}")
            setattr(cls, attribute, service)

    @classmethod
    def reset(cls) -> None:
        for attribute in (
            "_settings",
            "_binding_provider",
            "_slack_sender",
            "_sms_sender",
            "_display_sender",
            "_registry",
            "_displays",
            "_menu_cache",
            "_menu_refresher",
            "_dispatcher",
            "_backend",
            "_signup",
            "_lunch",
        ):
            setattr(cls, attribute, None)
