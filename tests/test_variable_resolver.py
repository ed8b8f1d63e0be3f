from signals_dispatch.models.dispatch_mapping import DispatchMapping
from signals_dispatch.orders.source import InMemoryOrderSource, OrderSnapshot
from signals_dispatch.services.template_payload import TemplatePayloadBuilder
from signals_dispatch.services.variables import AVAILABLE_VARIABLES, VariableResolver, unknown_variables
from tests.fixtures_data import HAPPY_PATH_ORDER, HAPPY_PATH_PHONE


def test_resolve_keeps_order_and_blanks_unknown_keys():
    resolver = VariableResolver(site_name="Loja Teste")

    values = resolver.resolve(HAPPY_PATH_ORDER, ["order_id", "billing_phone", "unknown_key"])

    assert values == ["1001", "+55 (11) 98765-4321", ""]


def test_unknown_key_is_blank_regardless_of_order_content():
    empty_order = OrderSnapshot(id=5)
    resolver = VariableResolver()

    assert resolver.resolve(empty_order, ["unknown_key"]) == [""]
    assert resolver.resolve(HAPPY_PATH_ORDER, ["unknown_key"]) == [""]


def test_every_catalog_key_resolves_from_order_or_site():
    resolver = VariableResolver(site_name="Loja Teste")
    keys = list(AVAILABLE_VARIABLES)

    values = resolver.resolve(HAPPY_PATH_ORDER, keys)

    assert len(values) == len(keys)
    assert dict(zip(keys, values)) == {
        "order_id": "1001",
        "order_number": "1001",
        "order_total": "59.90",
        "order_currency": "BRL",
        "billing_first_name": "Ana",
        "billing_last_name": "Souza",
        "billing_phone": "+55 (11) 98765-4321",
        "billing_email": "ana@example.com",
        "shipping_first_name": "Ana",
        "shipping_last_name": "Souza",
        "status": "processing",
        "site_name": "Loja Teste",
    }


def test_unknown_variables_lists_keys_outside_catalog():
    assert unknown_variables(["order_id", "coupon", "site_name", "x"]) == ["coupon", "x"]


def test_payload_builder_normalizes_phone_and_resolves_variables():
    mapping = DispatchMapping(
        event_key="order_status_processing",
        template_name="order_processing",
        language="pt_BR",
        variables_json='["billing_first_name", "order_number"]',
    )
    builder = TemplatePayloadBuilder(InMemoryOrderSource({1001: HAPPY_PATH_ORDER}), VariableResolver())

    payload = builder.build(1001, mapping)

    assert payload.is_sendable
    assert payload.phone_e164 == HAPPY_PATH_PHONE
    assert payload.template_name == "order_processing"
    assert payload.language == "pt_BR"
    assert payload.variables == ["Ana", "1001"]


def test_payload_builder_returns_empty_phone_for_missing_order_or_bad_phone():
    mapping = DispatchMapping(event_key="e", template_name="t", variables_json="[]")
    bad_phone_order = OrderSnapshot(id=2, billing_phone="12")
    builder = TemplatePayloadBuilder(InMemoryOrderSource({2: bad_phone_order}), VariableResolver())

    assert builder.build(1, mapping).is_sendable is False
    assert builder.build(2, mapping).phone_e164 == ""
