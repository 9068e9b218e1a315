import pytest
from notifications.channel import set_email_channel
from notifications.channel.fake_email import FakeEmailAdapter
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def notifications_bed():
    from notifications.domain import notifications

    bed = DomainFixture(notifications)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(notifications_bed):
    with notifications_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()


@pytest.fixture()
def email():
    adapter = FakeEmailAdapter()
    set_email_channel(adapter)
    return adapter
