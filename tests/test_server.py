import unittest
from unittest.mock import MagicMock, patch

from fastapi import APIRouter

from musicbot import server
from musicbot.errors import HTTPServerError


class HTTPServerTests(unittest.TestCase):
    def test_create_app_includes_routers(self) -> None:
        router = APIRouter()
        router.add_api_route("/ping", lambda: "pong", methods=["GET"])
        app = server.create_app(router)
        self.assertIn("/ping", [route.path for route in app.routes])

    def test_start_and_stop(self) -> None:
        uvicorn_server = MagicMock()
        uvicorn_server.started = True
        with patch.object(server.uvicorn, "Server", return_value=uvicorn_server):
            http = server.HTTPServer(MagicMock(), 8181)
            http.start(wait=1.0)
            http.stop()
        uvicorn_server.run.assert_called_once()
        self.assertTrue(uvicorn_server.should_exit)

    def test_listener_that_dies_is_an_error(self) -> None:
        uvicorn_server = MagicMock()
        uvicorn_server.started = False
        with patch.object(server.uvicorn, "Server", return_value=uvicorn_server):
            http = server.HTTPServer(MagicMock(), 8181)
            with self.assertRaises(HTTPServerError):
                http.start(wait=2.0)

    def test_stop_before_start_is_a_no_op(self) -> None:
        with patch.object(server.uvicorn, "Server"):
            server.HTTPServer(MagicMock(), 8181).stop()
