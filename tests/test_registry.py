import pytest

from src.exceptions import RevisionConflictError, ServiceAlreadyExistsError, ServiceNotFoundError
from src.registry import InMemoryServiceRegistry
from src.schema import OUTPUT_SCHEMA, input_type_tags
from src.scoring import score_record


def _publish(registry, model, name="credit_default", version="1.0.0"):
    return registry.publish(
        name=name,
        version=version,
        adapter=score_record,
        model=model,
        inputs=input_type_tags(),
        outputs=OUTPUT_SCHEMA,
        description="credit default scoring",
    )


def test_publish_then_get_returns_bound_entry(stub_model):
    registry = InMemoryServiceRegistry()
    model = stub_model(label=0, prob=0.12)
    published = _publish(registry, model)

    entry = registry.get("credit_default", "1.0.0")
    assert entry is published
    assert entry.revision == 1
    assert entry.model is model
    assert entry.inputs["sex"] == "character"
    assert entry.outputs == {"answer": "data.frame"}


def test_publish_same_name_and_version_fails(stub_model):
    registry = InMemoryServiceRegistry()
    _publish(registry, stub_model(label=0, prob=0.1))

    with pytest.raises(ServiceAlreadyExistsError):
        _publish(registry, stub_model(label=1, prob=0.9))

    # another version of the same name is a separate service
    _publish(registry, stub_model(label=1, prob=0.9), version="1.0.1")
    assert len(registry) == 2


@pytest.mark.parametrize(
    "name,version",
    [("bad name", "1.0"), ("", "1.0"), ("svc", ""), ("svc", "1.0/beta"), ("svc", "1.0?x"), ("svc", "1.0#a")],
)
def test_publish_rejects_invalid_identity(stub_model, name, version):
    with pytest.raises(ValueError):
        _publish(InMemoryServiceRegistry(), stub_model(label=0, prob=0.1), name=name, version=version)


def test_update_then_consume_uses_new_model(record, stub_model):
    registry = InMemoryServiceRegistry()
    _publish(registry, stub_model(label=0, prob=0.12))
    before = registry.get("credit_default", "1.0.0").consume(record)

    updated = registry.update("credit_default", "1.0.0", stub_model(label=1, prob=0.87))
    after = registry.get("credit_default", "1.0.0").consume(record)

    assert updated.revision == 2
    assert before["scored_prob"].iloc[0] == pytest.approx(0.12)
    assert after["scored_label"].iloc[0] == 1
    assert after["scored_prob"].iloc[0] == pytest.approx(0.87)


def test_update_compare_and_swap(stub_model):
    registry = InMemoryServiceRegistry()
    _publish(registry, stub_model(label=0, prob=0.1))

    registry.update("credit_default", "1.0.0", stub_model(label=0, prob=0.2), expected_revision=1)
    with pytest.raises(RevisionConflictError) as exc:
        registry.update("credit_default", "1.0.0", stub_model(label=0, prob=0.3), expected_revision=1)

    assert exc.value.actual == 2
    assert registry.get("credit_default", "1.0.0").model.prob == 0.2


def test_update_keeps_description_unless_given(stub_model):
    registry = InMemoryServiceRegistry()
    _publish(registry, stub_model(label=0, prob=0.1))

    entry = registry.update("credit_default", "1.0.0", stub_model(label=0, prob=0.2))
    assert entry.description == "credit default scoring"
    entry = registry.update("credit_default", "1.0.0", stub_model(label=0, prob=0.2), description="retrained")
    assert entry.description == "retrained"
    assert entry.created_at_utc <= entry.updated_at_utc


def test_update_missing_service_fails(stub_model):
    with pytest.raises(ServiceNotFoundError):
        InMemoryServiceRegistry().update("nope", "1.0.0", stub_model(label=0, prob=0.1))


def test_delete_then_get_fails(stub_model):
    registry = InMemoryServiceRegistry()
    _publish(registry, stub_model(label=0, prob=0.1))

    registry.delete("credit_default", "1.0.0")

    with pytest.raises(ServiceNotFoundError):
        registry.get("credit_default", "1.0.0")
    with pytest.raises(ServiceNotFoundError):
        registry.delete("credit_default", "1.0.0")
    assert registry.list_services() == []


def test_list_services_sorted_and_filtered(stub_model):
    registry = InMemoryServiceRegistry()
    _publish(registry, stub_model(label=0, prob=0.1), name="zeta", version="1.0.0")
    _publish(registry, stub_model(label=0, prob=0.1), name="alpha", version="2.0.0")
    _publish(registry, stub_model(label=0, prob=0.1), name="alpha", version="1.0.0")

    keys = [e.key for e in registry.list_services()]
    assert keys == [("alpha", "1.0.0"), ("alpha", "2.0.0"), ("zeta", "1.0.0")]
    assert [e.version for e in registry.list_services("alpha")] == ["1.0.0", "2.0.0"]
