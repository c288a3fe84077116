import pytest

from abn.client.store import Key, PropStore, SlotMap
from abn.schemas.filter import BooleanValue, NumberValue


# ========== SLOTMAP ==========
def test_insert_get_remove():
    slots = SlotMap()
    a = slots.insert("a")
    b = slots.insert("b")
    assert slots.get(a) == "a"
    assert len(slots) == 2
    assert slots.remove(a) == "a"
    assert slots.get(a) is None
    assert a not in slots
    assert slots.keys() == [b]
    assert len(slots) == 1


def test_slot_reuse_bumps_generation():
    """Une clé supprimée reste invalide même si l'emplacement est réutilisé"""
    slots = SlotMap()
    old = slots.insert("old")
    slots.remove(old)
    new = slots.insert("new")
    assert new.index == old.index
    assert new.generation == old.generation + 1
    assert slots.get(old) is None
    assert slots.get(new) == "new"


def test_remove_stale_key_raises():
    slots = SlotMap()
    key = slots.insert(1)
    slots.remove(key)
    with pytest.raises(KeyError):
        slots.remove(key)
    with pytest.raises(KeyError):
        slots.replace(key, 2)


def test_unknown_key():
    assert SlotMap().get(Key(5, 0)) is None


def test_items_in_slot_order():
    slots = SlotMap()
    keys = [slots.insert(n) for n in range(3)]
    assert list(slots.items()) == list(zip(keys, range(3)))


def test_items_skips_keys_removed_while_iterating():
    slots = SlotMap()
    first, second = slots.insert("a"), slots.insert("b")
    seen = []
    for key, value in slots.items():
        seen.append(value)
        if key == first:
            slots.remove(second)
            # le slot libéré est réutilisé avec une autre génération
            slots.insert("c")
    assert seen == ["a"]


# ========== PROPSTORE ==========
def test_interning_is_stable():
    props = PropStore()
    handle = props.intern("dog")
    assert props.intern("dog") == handle
    assert props.name(handle) == "dog"
    assert props.handle("cat") is None


def test_type_fixed_at_first_registration():
    props = PropStore()
    props.register("dog", "number")
    props.register("dog", "string")
    assert props.type_of("dog") == "number"


def test_values_per_task():
    props = PropStore()
    a, b = Key(0, 0), Key(1, 0)
    props.set(a, "dog", NumberValue(value=1))
    props.set(b, "dog", NumberValue(value=2))
    props.set(a, "done", BooleanValue(value=True))

    assert props.get(a, "dog") == NumberValue(value=1)
    assert props.for_task(a) == {"dog": NumberValue(value=1), "done": BooleanValue(value=True)}
    assert props.names() == ["dog", "done"]

    props.drop_task(a)
    assert props.for_task(a) == {}
    assert props.get(b, "dog") == NumberValue(value=2)
    assert props.remove(b, "dog") == NumberValue(value=2)
    assert props.remove(b, "dog") is None
