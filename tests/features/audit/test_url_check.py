import httpx
import pytest

from app.features.audit.exceptions import UrlUnreachableError
from app.features.audit.services.url_check import UrlCheckService, is_reachable_status

URL = "https://example.com"


def transport_for(status_code: int = 200, redirect_to: str = None, error: Exception = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if error is not None:
            raise error
        if redirect_to and request.url.path != "/moved":
            return httpx.Response(301, headers={"Location": redirect_to})
        return httpx.Response(status_code, text="<html></html>")

    return httpx.MockTransport(handler)


class TestReachableStatus:
    @pytest.mark.parametrize("status_code", [200, 204, 301, 400, 401, 410, 429])
    def test_reachable(self, status_code):
        assert is_reachable_status(status_code)

    @pytest.mark.parametrize("status_code", [403, 404, 500, 502, 503, 101])
    def test_unreachable(self, status_code):
        assert not is_reachable_status(status_code)


class TestEnsureReachable:
    async def test_ok_page(self):
        service = UrlCheckService(transport=transport_for(200))

        assert await service.ensure_reachable(URL) == 200

    async def test_follows_redirects(self):
        service = UrlCheckService(transport=transport_for(200, redirect_to="https://example.com/moved"))

        assert await service.ensure_reachable(URL) == 200

    async def test_auth_protected_page_is_still_accepted(self):
        service = UrlCheckService(transport=transport_for(401))

        assert await service.ensure_reachable(URL) == 401

    @pytest.mark.parametrize("status_code", [403, 404, 500, 503])
    async def test_rejected_status(self, status_code):
        service = UrlCheckService(transport=transport_for(status_code))

        with pytest.raises(UrlUnreachableError) as excinfo:
            await service.ensure_reachable(URL)

        assert excinfo.value.upstream_status == status_code
        assert str(status_code) in str(excinfo.value)
        assert excinfo.value.status_code == 400

    async def test_connection_error(self):
        error = httpx.ConnectError("Name or service not known")
        service = UrlCheckService(transport=transport_for(error=error))

        with pytest.raises(UrlUnreachableError) as excinfo:
            await service.ensure_reachable(URL)

        assert "Could not connect" in str(excinfo.value)

    async def test_timeout(self):
        service = UrlCheckService(transport=transport_for(error=httpx.ReadTimeout("timed out")))

        with pytest.raises(UrlUnreachableError) as excinfo:
            await service.ensure_reachable(URL)

        assert "Timed out" in str(excinfo.value)

    async def test_sends_browser_user_agent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_agent"] = request.headers["user-agent"]
            return httpx.Response(200)

        service = UrlCheckService(user_agent="AuditBot/1.0", transport=httpx.MockTransport(handler))
        await service.ensure_reachable(URL)

        assert seen["user_agent"] == "AuditBot/1.0"


class TestCheckExists:
    async def test_existing_site(self):
        service = UrlCheckService(transport=transport_for(200))

        response = await service.check_exists("example.com")

        assert response.exists is True
        assert response.url == "https://example.com"
        assert response.status_code == 200
        assert response.error is None

    async def test_uses_head_request(self):
        methods = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200)

        service = UrlCheckService(transport=httpx.MockTransport(handler))
        await service.check_exists(URL)

        assert methods == ["HEAD"]

    async def test_invalid_url(self):
        service = UrlCheckService(transport=transport_for(200))

        response = await service.check_exists("ftp://example.com")

        assert response.exists is False
        assert response.status_code == 400
        assert "scheme" in response.error

    async def test_unresolvable_host(self):
        error = httpx.ConnectError("Name or service not known")
        service = UrlCheckService(transport=transport_for(error=error))

        response = await service.check_exists("https://does-not-exist.invalid")

        assert response.exists is False
        assert response.status_code == 404

    async def test_error_status(self):
        service = UrlCheckService(transport=transport_for(500))

        response = await service.check_exists(URL)

        assert response.exists is False
        assert response.status_code == 500
        assert "500" in response.error
