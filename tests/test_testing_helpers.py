"""Tests for testing utilities."""

import pytest
import anyio
from pathrouter import HttpRouter
from pathrouter.testing import fetch, wait_for, with_timeout
from pathrouter.testing.helpers import _parse_response


class TestTestingHelpers:
    """Test the testing helper utilities."""

    @pytest.mark.anyio
    async def test_with_timeout_success(self):
        """Test with_timeout succeeds within limit."""
        async def quick_task():
            await anyio.sleep(0.01)
            return "done"

        result = await with_timeout(quick_task(), timeout=1.0)
        assert result == "done"

    @pytest.mark.anyio
    async def test_with_timeout_fails(self):
        """Test with_timeout raises on timeout."""
        async def slow_task():
            await anyio.sleep(5.0)
            return "done"

        with pytest.raises(TimeoutError):
            await with_timeout(slow_task(), timeout=0.1)

    @pytest.mark.anyio
    async def test_wait_for_success(self):
        """Test wait_for succeeds when condition met."""
        flag = {"value": False}

        async def set_flag():
            await anyio.sleep(0.05)
            flag["value"] = True

        async with anyio.create_task_group() as tg:
            tg.start_soon(set_flag)
            await wait_for(lambda: flag["value"], timeout=1.0, interval=0.01)

    @pytest.mark.anyio
    async def test_wait_for_timeout(self):
        """Test wait_for times out when condition not met."""
        with pytest.raises(TimeoutError):
            await wait_for(lambda: False, timeout=0.1, interval=0.01)

    @pytest.mark.anyio
    async def test_fetch(self):
        """Test fetch talks to a live router."""
        def hello(router, request, response):
            response.text(f"hello {request.method}", headers={"x-test": "yes"})

        async with HttpRouter() as router:
            router.add_handler("/hello", hello)
            bound = await router.listen("127.0.0.1", 0)

            res = await fetch("127.0.0.1", bound.port, "/hello", method="DELETE")
            assert res.status == 200
            assert res.headers["x-test"] == "yes"
            assert res.text == "hello DELETE"

    def test_parse_response(self):
        """Test raw response parsing."""
        res = _parse_response(b"HTTP/1.1 404 Not Found\r\ncontent-length: 2\r\n\r\nno")
        assert res.status == 404
        assert res.headers == {"content-length": "2"}
        assert res.body == b"no"

        with pytest.raises(ValueError):
            _parse_response(b"")
