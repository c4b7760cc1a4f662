from zero_trust import (
    DOWNLOAD_SECTIONS,
    INSTRUCTION_SECTIONS,
    MOBILE_ENROLL_URL,
    highlight_step,
    support_diagnostics,
)


def test_download_sections():
    assert [s["id"] for s in DOWNLOAD_SECTIONS] == ["desktop", "mobile"]
    assert [link["platform"] for link in DOWNLOAD_SECTIONS[0]["items"]] == ["Windows", "macOS", "Linux"]
    assert [len(s["steps"]) for s in INSTRUCTION_SECTIONS] == [8, 5]


def test_highlight_step():
    html = str(highlight_step("Open preferences > Account for ebox86"))
    assert '<span class="zt-highlight font-semibold">preferences</span>' in html
    assert '<span class="zt-highlight font-semibold">Account</span>' in html
    assert '<span class="zt-highlight font-semibold">ebox86</span>' in html
    assert "&gt;" in html


def test_highlight_step_escapes_plain_text():
    assert str(highlight_step("<b>plain</b>")) == "&lt;b&gt;plain&lt;/b&gt;"


def test_support_diagnostics_prefers_forwarded_for():
    info = support_diagnostics({"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}, "127.0.0.1")
    assert info["ip"] == "203.0.113.7"
    assert info["user_agent"] == "Unknown"


def test_support_diagnostics_fallbacks():
    assert support_diagnostics({"x-real-ip": "10.0.0.2"}, "127.0.0.1")["ip"] == "10.0.0.2"
    assert support_diagnostics({}, "127.0.0.1")["ip"] == "127.0.0.1"
    assert support_diagnostics({}, None)["ip"] == "Unknown"


def test_zero_trust_pages(client):
    assert "Enroll a device" in client.get("/zt").text

    enroll = client.get("/zt/enroll")
    assert enroll.status_code == 200
    assert MOBILE_ENROLL_URL in enroll.text
    assert 'zt-highlight font-semibold">ebox86</span>' in enroll.text

    support = client.get("/zt/support", headers={"X-Forwarded-For": "198.51.100.4", "User-Agent": "pytest-agent"})
    assert "198.51.100.4" in support.text
    assert "pytest-agent" in support.text
