import os
import re
import sys

import pytest

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

pytest.importorskip("PIL")

from wxr_import.media.media_fetcher import MediaFetcher, final_status, split_filename
from wxr_import.media.transport import FetchResponse
from wxr_samples import FakeTransport, ok_response, oversized_png, png_bytes

PNG_URL = "https://example.com/wp-content/uploads/2023/05/Beach_Day.png"
PDF_URL = "https://example.com/wp-content/uploads/2023/05/Brochure.pdf"


def make_fetcher(tmp_path, responses=None, **kwargs):
    transport = FakeTransport(responses)
    fetcher = MediaFetcher(
        str(tmp_path / "assets"),
        "assets/images/wpi",
        transport=transport,
        sleep_fn=lambda _s: None,
        **kwargs,
    )
    return fetcher, transport


def test_split_filename():
    assert split_filename("https://x/a/My%20Photo.JPG?w=1") == ("My Photo", "JPG")
    assert split_filename("https://x/photo?id=3") == ("photo", None)
    assert split_filename("https://x/") == ("image", None)


def test_final_status_uses_last_status_line():
    resp = FetchResponse(b"", "image/png", 200, ["HTTP/1.1 301 Moved Permanently", "HTTP/1.1 404 Not Found"])
    assert final_status(resp) == 404


def test_png_is_saved_under_date_path(tmp_path):
    fetcher, transport = make_fetcher(tmp_path, {PNG_URL: ok_response(png_bytes())})
    ref = fetcher.fetch(PNG_URL)
    assert ref == "assets/images/wpi/2023/05/beach-day.png"
    assert (tmp_path / "assets" / "2023" / "05" / "beach-day.png").read_bytes() == png_bytes()
    assert transport.calls == [PNG_URL]
    assert fetcher.errors == []


def test_existing_file_is_not_downloaded_again(tmp_path):
    target = tmp_path / "assets" / "2023" / "05"
    target.mkdir(parents=True)
    (target / "beach-day.png").write_bytes(b"old")
    fetcher, transport = make_fetcher(tmp_path)
    assert fetcher.fetch(PNG_URL) == "assets/images/wpi/2023/05/beach-day.png"
    assert transport.calls == []
    assert (target / "beach-day.png").read_bytes() == b"old"


def test_overwrite_existing_downloads_again(tmp_path):
    target = tmp_path / "assets" / "2023" / "05"
    target.mkdir(parents=True)
    (target / "beach-day.png").write_bytes(b"old")
    fetcher, transport = make_fetcher(tmp_path, {PNG_URL: ok_response(png_bytes())}, overwrite_existing=True)
    fetcher.fetch(PNG_URL)
    assert transport.calls == [PNG_URL]
    assert (target / "beach-day.png").read_bytes() == png_bytes()


def test_extension_is_inferred_from_content_type(tmp_path):
    url = "https://cdn.example.com/photo?id=3"
    fetcher, _ = make_fetcher(tmp_path, {url: ok_response(png_bytes(), "image/png; charset=binary")})
    ref = fetcher.fetch(url)
    assert re.fullmatch(r"assets/images/wpi/\d{4}/\d{2}/photo\.png", ref)


def test_not_found_returns_original_url(tmp_path):
    missing = FetchResponse(b"", "text/html", 404, ["HTTP/1.1 404 Not Found"])
    fetcher, _ = make_fetcher(tmp_path, {PNG_URL: missing})
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert fetcher.errors == [f"HTTP Error for {PNG_URL}: HTTP/1.1 404 Not Found"]


def test_redirect_chain_judged_by_final_hop(tmp_path):
    redirected = FetchResponse(png_bytes(), "image/png", 200, ["HTTP/1.1 301 Moved Permanently", "HTTP/1.1 200 OK"])
    fetcher, _ = make_fetcher(tmp_path, {PNG_URL: redirected})
    assert fetcher.fetch(PNG_URL) == "assets/images/wpi/2023/05/beach-day.png"
    assert fetcher.errors == []


def test_redirect_to_missing_page_fails(tmp_path):
    redirected = FetchResponse(b"", "text/html", 404, ["HTTP/1.1 302 Found", "HTTP/1.1 404 Not Found"])
    fetcher, _ = make_fetcher(tmp_path, {PNG_URL: redirected})
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert fetcher.errors[0].endswith("HTTP/1.1 404 Not Found")


def test_pdf_skipped_when_disabled(tmp_path):
    fetcher, _ = make_fetcher(tmp_path, {PDF_URL: ok_response(b"%PDF-1.4 body", "application/pdf")}, allow_pdf=False)
    assert fetcher.fetch(PDF_URL) == PDF_URL
    assert len(fetcher.errors) == 1
    assert fetcher.errors[0].startswith(f"Skipped PDF {PDF_URL}")


def test_pdf_saved_when_allowed(tmp_path):
    fetcher, _ = make_fetcher(tmp_path, {PDF_URL: ok_response(b"%PDF-1.4 body", "application/pdf")})
    assert fetcher.fetch(PDF_URL) == "assets/images/wpi/2023/05/brochure.pdf"
    assert (tmp_path / "assets" / "2023" / "05" / "brochure.pdf").exists()


def test_html_response_is_rejected(tmp_path):
    fetcher, _ = make_fetcher(tmp_path, {PNG_URL: ok_response(b"<html></html>", "text/html")})
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert fetcher.errors == [f"Invalid Content-Type for {PNG_URL}: text/html"]


def test_corrupt_image_is_rejected(tmp_path):
    fetcher, _ = make_fetcher(tmp_path, {PNG_URL: ok_response(b"definitely not a png")})
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert fetcher.errors == [f"Invalid image data for {PNG_URL}"]
    assert not (tmp_path / "assets" / "2023" / "05" / "beach-day.png").exists()


def test_transport_failure_is_recorded(tmp_path):
    fetcher, _ = make_fetcher(tmp_path)
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert len(fetcher.errors) == 1
    assert "connection refused" in fetcher.errors[0]


def test_disabled_downloads_do_nothing(tmp_path):
    fetcher, transport = make_fetcher(tmp_path, downloads_enabled=False)
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert transport.calls == []
    assert fetcher.errors == []


def test_delay_before_each_request(tmp_path):
    sleeps = []
    fetcher = MediaFetcher(
        str(tmp_path / "assets"),
        "assets/images/wpi",
        transport=FakeTransport({PNG_URL: ok_response(png_bytes())}),
        sleep_fn=sleeps.append,
    )
    fetcher.fetch(PNG_URL)
    assert sleeps == [0.2]


def test_oversized_image_is_rejected(tmp_path):
    fetcher, _ = make_fetcher(tmp_path, {PNG_URL: ok_response(oversized_png())})
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert fetcher.errors == [f"Invalid image data for {PNG_URL}"]
    assert not (tmp_path / "assets" / "2023" / "05" / "beach-day.png").exists()


class ExplodingTransport:
    def fetch(self, url):
        raise RuntimeError("socket closed unexpectedly")


def test_unexpected_error_is_recorded(tmp_path):
    fetcher = MediaFetcher(
        str(tmp_path / "assets"), "assets/images/wpi", transport=ExplodingTransport(), sleep_fn=lambda _s: None
    )
    assert fetcher.fetch(PNG_URL) == PNG_URL
    assert fetcher.errors == [f"Exception downloading {PNG_URL}: socket closed unexpectedly"]
