import json
from datetime import date

import pytest

from milewise.config import Settings
from milewise.domain.errors import RuleValidationError
from milewise.domain.models import ConversionRate, Merchant, SimulationInput
from milewise.repository.json_stores import JsonRuleStore
from milewise.repository.memory import (
    InMemoryConversionRateStore,
    InMemoryPaymentMethodStore,
    InMemoryTransactionStore,
)
from milewise.wiring import build_engine, build_engine_from_settings
from tests.factories import make_payment_method


@pytest.fixture
def engine():
    return build_engine_from_settings(Settings(_env_file=None))


def test_sample_rules_load() -> None:
    rules = JsonRuleStore("data/rules.json").load_rules()

    assert {rule.card_type_id for rule in rules} >= {"american-express-cobalt", "uob-lady's-solitaire-card"}


@pytest.mark.asyncio
async def test_simulate_dinner_across_sample_cards(engine) -> None:
    simulation = SimulationInput(
        merchant=Merchant(name="Burger Priest", mcc="5812"), amount=100, currency="CAD", date=date(2026, 10, 15)
    )
    payment_methods = await engine.payment_methods.get_payment_methods()

    ranked = await engine.simulator.simulate(simulation, payment_methods, "krisflyer")

    assert [item.payment_method_id for item in ranked] == ["pm-ladys", "pm-cobalt", "pm-wwmc", "pm-aeroplan"]
    assert ranked[0].miles_equivalent == 800
    assert ranked[1].total_points == 500
    assert ranked[1].miles_equivalent == 375
    assert ranked[3].excluded
    assert ranked[3].reason == "ConversionUnavailable"


@pytest.mark.asyncio
async def test_shared_cap_usage_from_sample_ledger(engine) -> None:
    cobalt = await engine.payment_methods.get_payment_method("pm-cobalt")

    usages = await engine.rewards.cap_usage(cobalt, reference_date=date(2026, 10, 19))

    assert len(usages) == 1
    assert usages[0].identifier == "cobalt-5x"
    assert usages[0].rule_name == "2 Rules Shared Cap"
    assert usages[0].used == pytest.approx(228.5)
    assert usages[0].cap == 10000


@pytest.mark.asyncio
async def test_malformed_rule_only_excludes_its_own_card(tmp_path) -> None:
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(
        json.dumps(
            [
                {
                    "id": "alpha-dining",
                    "card_type_id": "bank-alpha",
                    "name": "Dining",
                    "conditions": [{"kind": "mcc_include", "values": ["5812"]}],
                    "reward": {"base_point_rate": 1, "bonus_point_rate": 2},
                },
                {
                    "id": "gamma-broken",
                    "card_type_id": "bank-gamma",
                    "name": "Broken",
                    "conditions": [{"kind": "amount_range"}],
                },
            ]
        ),
        encoding="utf-8",
    )
    cards = [
        make_payment_method("pm-a", issuer="Bank", name="Alpha", reward_currency_id="bank-pts"),
        make_payment_method("pm-c", issuer="Bank", name="Gamma", reward_currency_id="bank-pts"),
    ]
    engine = build_engine(
        rule_store=JsonRuleStore(str(rules_file)),
        transaction_store=InMemoryTransactionStore(),
        rate_store=InMemoryConversionRateStore(
            [ConversionRate(reward_currency_id="bank-pts", miles_currency_id="krisflyer", rate=1.0)]
        ),
        payment_method_store=InMemoryPaymentMethodStore(cards),
    )
    simulation = SimulationInput(merchant=Merchant(mcc="5812"), amount=100, date=date(2026, 10, 15))

    ranked = await engine.simulator.simulate(simulation, cards, "krisflyer")

    by_id = {item.payment_method_id: item for item in ranked}
    assert not by_id["pm-a"].excluded
    assert by_id["pm-a"].total_points == 300
    assert by_id["pm-c"].excluded
    assert by_id["pm-c"].reason == "RuleValidationError"


@pytest.mark.asyncio
async def test_rule_store_validates_requested_card_type_only(tmp_path) -> None:
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(
        json.dumps(
            [
                {"id": "ok", "card_type_id": "bank-alpha", "name": "Ok"},
                {"id": "bad", "card_type_id": "bank-gamma", "name": "Bad", "priority": "high"},
            ]
        ),
        encoding="utf-8",
    )
    store = JsonRuleStore(str(rules_file))

    assert [rule.id for rule in await store.get_rules_for_card_type("bank-alpha")] == ["ok"]
    with pytest.raises(RuleValidationError):
        await store.get_rules_for_card_type("bank-gamma")
