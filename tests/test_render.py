"""渲染器測試：httpx 靜態渲染與共用等待邏輯。"""

import asyncio

import httpx
import pytest
import respx

from tests.conftest import FakePage
from news_harvester.errors import NavigationFailure
from news_harvester.render import ControlState, HttpRenderer, StaticPage

URL = "https://www.fact-watch.org/list/"


async def open_with(url: str = URL):
    async with HttpRenderer() as renderer:
        return await renderer.open(url, {"Accept-Language": "bn"}, timeout=5)


class TestHttpRenderer:
    """HttpRenderer 測試。"""

    @respx.mock
    def test_open_returns_snapshot(self):
        route = respx.get(URL).mock(
            return_value=httpx.Response(200, text='<div class="card"><a href="/a/">A</a></div>')
        )
        page = asyncio.run(open_with())

        assert page.status == 200
        assert route.calls.last.request.headers["Accept-Language"] == "bn"
        cards = asyncio.run(page.query("div.card a"))
        assert [a.get("href") for a in cards] == ["/a/"]

    @respx.mock
    def test_error_status_is_passed_through(self):
        respx.get(URL).mock(return_value=httpx.Response(404, text="not found"))
        page = asyncio.run(open_with())
        assert page.status == 404

    @respx.mock
    def test_connect_error_is_navigation_failure(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(NavigationFailure) as exc:
            asyncio.run(open_with())
        assert exc.value.url == URL

    @respx.mock
    def test_timeout_is_navigation_failure(self):
        respx.get(URL).mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(NavigationFailure) as exc:
            asyncio.run(open_with())
        assert "逾時" in exc.value.reason

    def test_open_before_start(self):
        with pytest.raises(RuntimeError):
            asyncio.run(HttpRenderer().open(URL, {}, 5))


class TestStaticPage:
    """StaticPage 測試。"""

    def test_control_state(self):
        page = StaticPage(URL, 200, '<button class="more">more</button>')
        assert asyncio.run(page.control_state("button.more")) is ControlState.HIDDEN
        assert asyncio.run(page.control_state("button.other")) is ControlState.ABSENT

    def test_click_not_supported(self):
        page = StaticPage(URL, 200, "<html></html>")
        with pytest.raises(NotImplementedError):
            asyncio.run(page.click("button"))

    def test_wait_for_selector_checks_once(self):
        page = StaticPage(URL, 200, '<div class="more-wrapper"></div>')
        assert asyncio.run(page.wait_for_selector(".more-wrapper", 20)) is True
        assert asyncio.run(page.wait_for_selector(".missing", 20)) is False

    def test_query_one(self):
        page = StaticPage(URL, 200, "<h1>Title</h1>")
        assert asyncio.run(page.query_one("h1")).get_text() == "Title"
        assert asyncio.run(page.query_one("h2")) is None


class TestWaitFor:
    """RenderedPage.wait_for() 測試。"""

    def test_true_when_predicate_holds(self):
        page = FakePage(URL, 200, "<p id='end'>done</p>")
        result = asyncio.run(page.wait_for(lambda s: s.select_one("#end") is not None, 0.01, 1))
        assert result is True

    def test_false_on_timeout(self):
        page = FakePage(URL, 200, "<p>still loading</p>")
        result = asyncio.run(page.wait_for(lambda s: s.select_one("#end") is not None, 0.01, 0.05))
        assert result is False

    def test_sees_later_changes(self):
        page = FakePage(URL, 200, "<p>loading</p>")

        async def go():
            async def finish():
                await asyncio.sleep(0.03)
                page.html = "<p id='end'>done</p>"

            task = asyncio.create_task(finish())
            result = await page.wait_for(lambda s: s.select_one("#end") is not None, 0.01, 1)
            await task
            return result

        assert asyncio.run(go()) is True
