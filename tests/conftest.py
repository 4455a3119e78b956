import pytest

from offers.policy import default_offer_policy
from offers.scheduler import ManualScheduler
from routing.enrichment import RouteEnricher
from selection.controller import SelectionController

from .fakes import FakePayment


@pytest.fixture
def scheduler():
    return ManualScheduler(interval_s=5)


@pytest.fixture
def make_controller(scheduler):
    def _make(backend, provider, payment=None, policy=None):
        enricher = RouteEnricher(provider, batch_timeout_s=5, max_workers=4)
        return SelectionController(
            "REQ-1",
            backend,
            enricher,
            payment=payment or FakePayment(),
            scheduler=scheduler,
            policy=policy or default_offer_policy(),
        )
    return _make
