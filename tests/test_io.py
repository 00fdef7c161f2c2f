"""
Tests for the requests based io layer, with the session mocked away.
"""

from unittest import mock

from aadgraph.directoryobjects import User
from aadgraph.io import SyncIO
from aadgraph.io import SyncIOProtocol
from aadgraph.protocol import GraphContext
from aadgraph.protocol import GraphProtocol

ENDPOINT = "https://graph.windows.net/contoso.com"


def session_returning(status=200, headers=None, content=b""):
    session = mock.Mock()
    session.request.return_value = mock.Mock(
        status_code=status, headers=headers or {}, content=content
    )
    return session


class TestSyncIO:
    def setup_method(self):
        self.protocol = GraphProtocol(
            GraphContext(tenant="contoso.com"), client_request_id="b1"
        )

    def test_is_an_io_protocol(self):
        assert isinstance(SyncIO(session=mock.Mock()), SyncIOProtocol)

    def test_execute(self):
        session = session_returning(
            200, {"Content-Type": "application/json"}, b'{"value": []}'
        )
        io = SyncIO(session=session, timeout=5)
        request = self.protocol.get_request(User, "u1")
        response = io.execute(request)
        sent = session.request.call_args.kwargs
        assert sent["method"] == "GET"
        assert sent["url"] == request.url
        assert sent["timeout"] == 5
        assert response.status == 200
        assert response.body == b'{"value": []}'
        assert response.headers["Content-Type"] == "application/json"

    def test_batch_body_sent_as_built(self):
        """The multipart body goes out exactly as the protocol built it"""
        user = User.from_wire({"objectId": "u2"})
        user.display_name = "Bob"
        items = [
            self.protocol.batch_item(self.protocol.get_request(User, "u1")),
            self.protocol.batch_item(self.protocol.update_request(user)),
        ]
        request = self.protocol.batch_request(items)
        session = session_returning(202)
        SyncIO(session=session).execute(request)
        sent = session.request.call_args.kwargs
        assert sent["data"] is request.body
        assert b"\r\n--batch_b1--" in sent["data"]
        assert sent["headers"]["Content-Type"] == "multipart/mixed; boundary=batch_b1"

    def test_close_keeps_foreign_session(self):
        session = mock.Mock()
        SyncIO(session=session).close()
        session.close.assert_not_called()
