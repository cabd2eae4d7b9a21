import pytest

from app.utils.reshaping import MalformedUpstreamPayload, to_name_id_pairs


def test_records_become_name_id_pairs_in_order():
    records = [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}]

    assert to_name_id_pairs(records) == [{"A": "1"}, {"B": "2"}]


def test_ids_are_coerced_to_strings():
    records = [{"id": 10, "name": "Acme", "slug": "acme"}]

    assert to_name_id_pairs(records) == [{"Acme": "10"}]


def test_duplicate_names_are_kept():
    records = [{"id": "1", "name": "Same"}, {"id": "2", "name": "Same"}]

    assert to_name_id_pairs(records) == [{"Same": "1"}, {"Same": "2"}]


def test_empty_list():
    assert to_name_id_pairs([]) == []


def test_error_body_instead_of_list_is_malformed():
    with pytest.raises(MalformedUpstreamPayload):
        to_name_id_pairs({"detail": "Invalid token"})


@pytest.mark.parametrize(
    "record",
    [{"id": "1"}, {"name": "A"}, {"id": None, "name": "A"}, {"id": "1", "name": None}, "A", None],
)
def test_record_without_id_or_name_is_malformed(record):
    with pytest.raises(MalformedUpstreamPayload):
        to_name_id_pairs([{"id": "0", "name": "ok"}, record])
