"""
Tests for Prometheus request metrics.
"""


def scrape(client):
    response = client.get('/metrics')
    assert response.status_code == 200
    return response.get_data(as_text=True)


def test_path_values_are_not_label_values(client):
    client.get('/trust/agents/agent-zz9/skills/skill-qq7')
    client.get('/trust/ranking-config/window-xx1')

    text = scrape(client)

    assert 'route="/trust/agents/<agent_id>/skills/<skill_id>"' in text
    assert 'route="/trust/ranking-config/<window>"' in text
    for raw in ('agent-zz9', 'skill-qq7', 'window-xx1'):
        assert raw not in text


def test_unmatched_paths_share_one_label(client):
    client.get('/no/such/path-1')
    client.get('/no/such/path-2')

    text = scrape(client)

    assert 'route="<unmatched>"' in text
    assert 'path-1' not in text


def test_ingest_counters_are_exposed(client, app):
    app.extensions['metrics'].record_ingest(inserted=2, skipped=1)

    assert 'trustgraph_events_ingested_total' in scrape(client)
