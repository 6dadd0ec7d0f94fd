def test_metrics_endpoint_exposes_prometheus(app):
    with app.test_client() as client:
        client.get('/health')
        resp = client.get('/api/metrics')
        assert resp.status_code == 200
        body = resp.data.decode('utf-8')
        # Basic presence of our metric names
        assert 'mp_http_requests_total' in body
        assert 'mp_payment_completions_total' in body
        assert 'mp_invoices_generated_total' in body
        # Check content type
        assert resp.mimetype.startswith('text/plain')


def test_health_and_status(client, db_session):
    assert client.get('/health').get_json()['status'] == 'healthy'

    status = client.get('/api/status').get_json()
    assert status['status'] == 'operational'
    assert status['database'] == 'ok'
