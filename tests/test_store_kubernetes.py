"""Tests for the Kubernetes record store."""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from kube_dns_solver.errors import Cancelled, RecordNotFound, StoreError
from kube_dns_solver.models import DnsRecord
from kube_dns_solver.store.base import Deadline, Found, NotFound
from kube_dns_solver.store.kubernetes import KubernetesRecordStore

_COORDS = {"group": "dns.xzzpig.com", "version": "v1", "plural": "records"}


def _done(value=None):
    return MagicMock(get=MagicMock(return_value=value))


def _failed(exc):
    return MagicMock(get=MagicMock(side_effect=exc))


def _api_error(status, message=None):
    exc = ApiException(status=status, reason="Error")
    exc.body = json.dumps({"kind": "Status", "message": message}) if message else None
    return exc


def _stored_object(**spec_overrides):
    spec = {"name": "example.com", "type": "TXT", "value": "tok"}
    spec.update(spec_overrides)
    return {
        "apiVersion": "dns.xzzpig.com/v1",
        "kind": "Record",
        "metadata": {"name": "acme-example-com", "namespace": "default", "uid": "uid-9", "resourceVersion": "42"},
        "spec": spec,
    }


def _make_store(mock_api, api_client=None):
    return KubernetesRecordStore(
        api_client=api_client or MagicMock(),
        timeout=10.0,
        _custom_objects=mock_api,
        **_COORDS,
    )


class TestKubernetesGet:
    def test_returns_found_record(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _done(_stored_object())
        store = _make_store(mock_api)

        result = store.get("default", "acme-example-com")

        assert isinstance(result, Found)
        assert result.record.uid == "uid-9"
        assert result.record.resource_version == "42"
        mock_api.get_namespaced_custom_object.assert_called_once_with(
            namespace="default",
            name="acme-example-com",
            async_req=True,
            _request_timeout=10.0,
            **_COORDS,
        )
        mock_api.get_namespaced_custom_object.return_value.get.assert_called_once_with(timeout=10.0)

    def test_404_is_not_found(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _failed(_api_error(404))
        store = _make_store(mock_api)

        assert store.get("default", "acme-example-com") == NotFound(namespace="default", name="acme-example-com")

    def test_forbidden_raises_store_error(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _failed(_api_error(403, "records is forbidden"))
        store = _make_store(mock_api)

        with pytest.raises(StoreError, match="records is forbidden") as exc_info:
            store.get("default", "acme-example-com")
        assert exc_info.value.status_code == 403

    def test_error_without_status_body_uses_reason(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _failed(_api_error(500))
        store = _make_store(mock_api)

        with pytest.raises(StoreError, match="500 Error"):
            store.get("default", "acme-example-com")

    def test_protocol_error_raises_store_error(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _failed(
            urllib3.exceptions.ProtocolError("connection refused")
        )
        store = _make_store(mock_api)

        with pytest.raises(StoreError, match="connection refused"):
            store.get("default", "acme-example-com")

    def test_socket_timeout_raises_cancelled(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _failed(
            urllib3.exceptions.ReadTimeoutError(None, "/", "read timed out")
        )
        store = _make_store(mock_api)

        with pytest.raises(Cancelled):
            store.get("default", "acme-example-com", deadline=Deadline(5))

    def test_deadline_bounds_request_and_wait(self):
        mock_api = MagicMock()
        mock_api.get_namespaced_custom_object.return_value = _failed(_api_error(404))
        store = _make_store(mock_api)

        store.get("default", "acme-example-com", deadline=Deadline(5))

        request_timeout = mock_api.get_namespaced_custom_object.call_args.kwargs["_request_timeout"]
        wait_timeout = mock_api.get_namespaced_custom_object.return_value.get.call_args.kwargs["timeout"]
        assert 0 < request_timeout <= 5
        assert wait_timeout == request_timeout

    def test_expired_deadline_skips_request(self):
        mock_api = MagicMock()
        store = _make_store(mock_api)

        with pytest.raises(Cancelled):
            store.get("default", "acme-example-com", deadline=Deadline(-1))
        mock_api.get_namespaced_custom_object.assert_not_called()


class TestKubernetesCreate:
    def test_creates_record_without_server_fields(self):
        mock_api = MagicMock()
        mock_api.create_namespaced_custom_object.return_value = _done(_stored_object())
        store = _make_store(mock_api)
        record = DnsRecord(
            namespace="default",
            name="acme-example-com",
            record_name="example.com",
            record_value="tok",
            labels={"team": "web"},
        )

        created = store.create(record)

        assert created.uid == "uid-9"
        kwargs = mock_api.create_namespaced_custom_object.call_args.kwargs
        assert kwargs["namespace"] == "default"
        assert kwargs["body"] == {
            "apiVersion": "dns.xzzpig.com/v1",
            "kind": "Record",
            "metadata": {"name": "acme-example-com", "namespace": "default", "labels": {"team": "web"}},
            "spec": {"name": "example.com", "type": "TXT", "value": "tok"},
        }

    def test_conflict_raises_store_error(self):
        mock_api = MagicMock()
        mock_api.create_namespaced_custom_object.return_value = _failed(_api_error(409, "already exists"))
        store = _make_store(mock_api)

        with pytest.raises(StoreError) as exc_info:
            store.create(DnsRecord(namespace="default", name="acme-example-com"))
        assert exc_info.value.status_code == 409


class TestKubernetesUpdate:
    def test_replaces_record_with_resource_version(self):
        mock_api = MagicMock()
        mock_api.replace_namespaced_custom_object.return_value = _done(_stored_object(value="new"))
        store = _make_store(mock_api)
        record = DnsRecord.from_dict(_stored_object())
        record.record_value = "new"

        updated = store.update(record)

        assert updated.record_value == "new"
        kwargs = mock_api.replace_namespaced_custom_object.call_args.kwargs
        assert kwargs["name"] == "acme-example-com"
        assert kwargs["body"]["metadata"]["uid"] == "uid-9"
        assert kwargs["body"]["metadata"]["resourceVersion"] == "42"
        assert kwargs["body"]["spec"]["value"] == "new"

    def test_404_raises_record_not_found(self):
        mock_api = MagicMock()
        mock_api.replace_namespaced_custom_object.return_value = _failed(_api_error(404))
        store = _make_store(mock_api)

        with pytest.raises(RecordNotFound):
            store.update(DnsRecord.from_dict(_stored_object()))


class TestKubernetesDelete:
    def test_deletes_by_identity(self):
        mock_api = MagicMock()
        mock_api.delete_namespaced_custom_object.return_value = _done({"kind": "Status", "status": "Success"})
        store = _make_store(mock_api)

        store.delete("default", "acme-example-com")

        kwargs = mock_api.delete_namespaced_custom_object.call_args.kwargs
        assert (kwargs["namespace"], kwargs["name"]) == ("default", "acme-example-com")

    def test_404_raises_record_not_found(self):
        mock_api = MagicMock()
        mock_api.delete_namespaced_custom_object.return_value = _failed(_api_error(404))
        store = _make_store(mock_api)

        with pytest.raises(RecordNotFound):
            store.delete("default", "acme-example-com")


def test_close_closes_api_client():
    mock_client = MagicMock()
    store = _make_store(MagicMock(), api_client=mock_client)

    store.close()

    mock_client.close.assert_called_once()


class _TricklingHandler(BaseHTTPRequestHandler):
    """Answers every GET with a valid Record, one byte every 0.3s for about 3s."""

    def do_GET(self):
        body = json.dumps(_stored_object()).encode()
        padded = b" " * 10 + body
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(padded)))
        self.end_headers()
        try:
            for i in range(10):
                self.wfile.write(padded[i : i + 1])
                self.wfile.flush()
                time.sleep(0.3)
            self.wfile.write(padded[10:])
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, *args):
        pass


@pytest.fixture
def trickling_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TricklingHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_slow_api_server_is_cut_off_at_deadline(trickling_server):
    configuration = client.Configuration()
    configuration.host = trickling_server
    store = KubernetesRecordStore(api_client=client.ApiClient(configuration), **_COORDS)

    started = time.monotonic()
    with pytest.raises(Cancelled):
        store.get("default", "acme-example-com", deadline=Deadline(1.0))
    elapsed = time.monotonic() - started

    assert elapsed < 2.0
    store.close()
