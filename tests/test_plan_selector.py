import asyncio

import pytest

from app.client.orchestrator import CheckoutOrchestrator, CheckoutState
from app.client.plan_selector import PlanSelector, price_label
from app.core.plans import PLANS
from conftest import FakeLoader, FakeWidget, declines, pays


def selector_for(gateway, script=None):
    orchestrator = CheckoutOrchestrator(gateway, FakeLoader(FakeWidget(script)), public_key="rzp_test_public")
    return PlanSelector(orchestrator)


def test_first_plan_is_selected_by_default(gateway):
    selector = selector_for(gateway)

    assert selector.selected_id == "plan_basic"
    assert [selected for _, selected in selector.options()] == [True, False]


def test_exactly_one_plan_is_selected(gateway):
    selector = selector_for(gateway)

    selector.select("plan_pro")

    assert selector.selected_plan.name == "Pro"
    assert sum(selected for _, selected in selector.options()) == 1


def test_unknown_plan_cannot_be_selected(gateway):
    selector = selector_for(gateway)

    with pytest.raises(ValueError):
        selector.select("plan_enterprise")

    assert selector.selected_id == "plan_basic"


def test_price_label():
    assert price_label(PLANS.get("plan_pro")) == "₹2499"


def test_confirm_checks_out_the_selected_plan(gateway):
    selector = selector_for(gateway, pays("pay_123"))
    selector.open()
    selector.select("plan_pro")

    result = asyncio.run(selector.confirm())

    assert result.payment_id == "pay_123"
    assert gateway.calls == [2499]
    assert not selector.is_open


def test_controls_are_locked_while_checkout_is_in_flight(gateway):
    selector = selector_for(gateway, pays())
    selector.open()

    async def main():
        gateway.gate = asyncio.Event()
        attempt = asyncio.create_task(selector.confirm())
        await asyncio.sleep(0)

        during = {
            "enabled": selector.confirm_enabled,
            "label": selector.confirm_label,
            "second": await selector.confirm(),
            "cancelled": selector.cancel(),
        }
        selector.select("plan_pro")
        during["selected"] = selector.selected_id

        gateway.gate.set()
        await attempt
        return during

    during = asyncio.run(main())

    assert during == {
        "enabled": False,
        "label": "Processing...",
        "second": None,
        "cancelled": False,
        "selected": "plan_basic",
    }
    assert gateway.calls == [999]


def test_failure_keeps_dialog_open_for_retry(gateway):
    selector = selector_for(gateway, declines("card declined"))
    selector.open()

    asyncio.run(selector.confirm())

    assert selector.is_open
    assert selector.confirm_enabled
    assert selector.confirm_label == "Confirm Selection"
    assert selector.orchestrator.error == "card declined"


def test_confirm_is_disabled_until_success_is_dismissed(gateway):
    selector = selector_for(gateway, pays())
    asyncio.run(selector.confirm())

    assert not selector.confirm_enabled
    assert asyncio.run(selector.confirm()) is None

    selector.orchestrator.dismiss()

    assert selector.orchestrator.state == CheckoutState.IDLE
    assert selector.confirm_enabled


def test_cancel_closes_the_dialog(gateway):
    selector = selector_for(gateway)
    selector.open()

    assert selector.cancel() is True
    assert not selector.is_open
    assert gateway.calls == []
