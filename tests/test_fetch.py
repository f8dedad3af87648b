import threading

import requests

from sitemapper.fetch import Fetcher


def test_fetch_links_extracts_absolute_links(make_session, make_page):
    session = make_session({"https://example.com/": make_page("/about", "https://other.org/")})
    result = Fetcher(session=session).fetch_links("https://example.com/")
    assert result.ok
    assert result.status_code == 200
    assert result.links == ["https://example.com/about", "https://other.org/"]


def test_transport_error_gives_empty_result(make_session):
    session = make_session({"https://example.com/": requests.Timeout("too slow")})
    result = Fetcher(session=session).fetch_links("https://example.com/")
    assert result.links == []
    assert result.error == "Timeout"
    assert not result.ok


def test_non_html_response_has_no_links(make_session, make_page):
    pdf = make_page("/about")
    pdf.headers["content-type"] = "application/pdf"
    session = make_session({"https://example.com/file": pdf})
    result = Fetcher(session=session).fetch_links("https://example.com/file")
    assert result.ok
    assert result.links == []


def test_fetcher_sets_user_agent(make_session):
    session = make_session({})
    Fetcher(session=session, user_agent="test-agent/2.0")
    assert session.headers["User-Agent"] == "test-agent/2.0"


def test_fetch_all_returns_results_in_input_order(make_session, make_page):
    urls = [f"https://example.com/{i}" for i in range(8)]
    pages = {url: make_page(f"{url}/child") for url in urls}
    pages[urls[3]] = requests.ConnectionError("refused")
    session = make_session(pages)

    results = Fetcher(session=session).fetch_all(urls)

    assert [r.source for r in results] == urls
    assert results[3].links == [] and results[3].error == "ConnectionError"
    for url, result in zip(urls, results):
        if url != urls[3]:
            assert result.links == [f"{url}/child"]
    assert sorted(session.requested) == sorted(urls)


def test_fetch_all_runs_requests_concurrently(make_session, make_page):
    urls = ["https://example.com/a", "https://example.com/b", "https://example.com/c"]
    barrier = threading.Barrier(len(urls), timeout=5)

    class BarrierSession(make_session):
        def get(self, url, **kwargs):
            # Only passes if all three requests are in flight at once
            barrier.wait()
            return super().get(url, **kwargs)

    session = BarrierSession({url: make_page() for url in urls})
    results = Fetcher(session=session).fetch_all(urls)
    assert all(r.ok for r in results)


def test_fetch_all_with_worker_cap(make_session, make_page):
    urls = [f"https://example.com/{i}" for i in range(5)]
    session = make_session({url: make_page("/x") for url in urls})
    results = Fetcher(session=session, max_workers=2).fetch_all(urls)
    assert [r.links for r in results] == [["https://example.com/x"]] * 5


def test_fetch_all_empty_batch(make_session):
    assert Fetcher(session=make_session({})).fetch_all([]) == []


def test_fetcher_leaves_injected_session_open(make_session):
    session = make_session({})
    with Fetcher(session=session):
        pass
    assert not session.closed


def test_links_resolve_against_redirected_url(make_session, make_response):
    resp = make_response('<a href="post1">first post</a>', url="https://example.com/blog/")
    session = make_session({"https://example.com/blog": resp})
    result = Fetcher(session=session).fetch_links("https://example.com/blog")
    assert result.source == "https://example.com/blog"
    assert result.links == ["https://example.com/blog/post1"]
    assert resp.closed


def test_slow_body_is_cut_off_at_timeout(make_session, make_response):
    body = "<html>" + "x" * (4 * 64 * 1024) + '<a href="/late">late</a></html>'
    resp = make_response(body, chunk_delay=0.05)
    session = make_session({"https://example.com/slow": resp})
    result = Fetcher(session=session, timeout_s=0.01).fetch_links("https://example.com/slow")
    assert result.links == []
    assert result.error == "Timeout"
    assert resp.closed


def test_rejected_markup_gives_empty_result(make_session, make_page, monkeypatch):
    from bs4 import ParserRejectedMarkup

    from sitemapper import fetch

    def reject(body, base_url):
        raise ParserRejectedMarkup("cannot parse")

    monkeypatch.setattr(fetch, "extract_links", reject)
    session = make_session({"https://example.com/": make_page("/about")})
    result = Fetcher(session=session).fetch_links("https://example.com/")
    assert result.links == []
    assert result.error == "parse_error"
    assert result.status_code == 200
