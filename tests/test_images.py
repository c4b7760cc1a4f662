from images import blur_url, build_image, object_position, urlfor

REF = "image-Tb9Ew8CXIwaY6R1kjMvI0uRR-2000x3000-jpg"


def test_urlfor_builds_cdn_url():
    url = urlfor({"asset": {"_ref": REF}}, width=400, height=300, quality=75)
    assert url == (
        "https://cdn.sanity.io/images/testproj/production/"
        "Tb9Ew8CXIwaY6R1kjMvI0uRR-2000x3000.jpg?w=400&h=300&q=75&auto=format"
    )


def test_urlfor_accepts_bare_ref_and_overrides():
    url = urlfor(REF, auto_format=False, project_id="other", dataset="staging")
    assert url == "https://cdn.sanity.io/images/other/staging/Tb9Ew8CXIwaY6R1kjMvI0uRR-2000x3000.jpg"


def test_urlfor_rejects_unparseable_refs():
    assert urlfor({"asset": {"_ref": "file-abc-pdf"}}) is None
    assert urlfor(None) is None
    assert urlfor({}) is None


def test_blur_url_is_tiny():
    assert blur_url(REF).endswith("?w=20&q=20&auto=format")


def test_object_position_from_hotspot():
    assert object_position({}) == "center"
    assert object_position({"hotspot": {"x": 0.25, "y": 0.5}}) == "25% 50%"
    assert object_position({"hotspot": {"x": None, "y": 0.1}}) == "50% 10%"


def test_build_image_prefers_ref_and_reads_metadata():
    img = {
        "asset": {
            "_ref": REF,
            "url": "https://cdn.example/raw.jpg",
            "metadata": {"lqip": "data:image/jpeg;base64,AAA", "dimensions": {"width": 2000, "height": 3000}},
        },
        "hotspot": {"x": 0.3, "y": 0.7},
    }
    built = build_image(img, width=800)
    assert built.url.startswith("https://cdn.sanity.io/images/testproj/production/")
    assert "w=800" in built.url
    assert built.blur_data_url == "data:image/jpeg;base64,AAA"
    assert built.object_position == "30% 70%"
    assert (built.width, built.height) == (2000, 3000)


def test_build_image_falls_back_to_expanded_asset_url():
    built = build_image({"asset": {"url": "https://cdn.sanity.io/images/p/d/x.png"}})
    assert built.url == "https://cdn.sanity.io/images/p/d/x.png"
    assert built.blur_data_url is None
    assert built.object_position == "center"


def test_build_image_without_url():
    assert build_image(None) is None
    assert build_image({"asset": {}}) is None
