from agentcloudapi.services.connectors import filter_connectors

CONNECTORS = [
    {"name": "Postgres", "sourceDefinitionId": "1"},
    {"name": "postgres", "sourceDefinitionId": "2"},
    {"name": "Google Sheets", "sourceDefinitionId": "3"},
    {"name": "Stripe", "sourceDefinitionId": "4"},
]


def test_dedupes_by_lowercase_name_keeping_first():
    result = filter_connectors(CONNECTORS)
    assert [c["sourceDefinitionId"] for c in result] == ["1", "3", "4"]


def test_filters_by_case_insensitive_substring():
    assert [c["name"] for c in filter_connectors(CONNECTORS, "SHEET")] == ["Google Sheets"]
    assert filter_connectors(CONNECTORS, "mysql") == []


def test_empty_search_keeps_everything():
    assert len(filter_connectors(CONNECTORS, "")) == 3
