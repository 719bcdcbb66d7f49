import pytest

from lunchbell.config import Settings
from lunchbell.services.backends import LocalDispatchBackend
from lunchbell.services.binding import TwilioNotifyBindingProvider
from lunchbell.services.console import ConsoleBindingProvider, ConsoleSlackSender, ConsoleSmsSender
from lunchbell.services.factory import ServiceFactory
from lunchbell.services.senders import SlackWebSender, TwilioNotifySender


def test_unconfigured_providers_fall_back_to_console(tmp_path):
    ServiceFactory.override(settings=Settings(data_dir=tmp_path))

    assert isinstance(ServiceFactory.get_binding_provider(), ConsoleBindingProvider)
    assert isinstance(ServiceFactory.get_slack_sender(), ConsoleSlackSender)
    assert isinstance(ServiceFactory.get_sms_sender(), ConsoleSmsSender)
    assert ServiceFactory.get_menu_refresher() is None


def test_configured_providers(tmp_path):
    ServiceFactory.override(
        settings=Settings(
            data_dir=tmp_path,
            twilio_account_sid="AC1",
            twilio_auth_token="secret",
            twilio_notify_service_sid="IS1",
            twilio_messaging_service_sid="MG1",
            slack_token="xoxb-1",
        )
    )

    assert isinstance(ServiceFactory.get_binding_provider(), TwilioNotifyBindingProvider)
    assert isinstance(ServiceFactory.get_sms_sender(), TwilioNotifySender)
    assert isinstance(ServiceFactory.get_slack_sender(), SlackWebSender)


async def test_services_are_singletons(tmp_path):
    ServiceFactory.override(settings=Settings(data_dir=tmp_path))

    assert ServiceFactory.get_registry() is ServiceFactory.get_registry()
    assert ServiceFactory.get_signup_service().registry is ServiceFactory.get_registry()
    backend = await ServiceFactory.get_backend()
    assert isinstance(backend, LocalDispatchBackend)
    assert (await ServiceFactory.get_lunch_service()).backend is backend


def test_override_rejects_unknown_service():
    with pytest.raises(AttributeError):
        ServiceFactory.override(mailer=object())
