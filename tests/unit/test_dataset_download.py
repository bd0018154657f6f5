from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from osm_tagging_schema.dataset import REQUIRED_FILES, DatasetSource, download_dataset, validate_structure
from osm_tagging_schema.errors import SchemaLoadError

FIXTURE_ROOT = Path(__file__).resolve().parents[1] / "fixtures" / "id-tagging-schema"
BASE_URL = "https://cdn.example.test/schema/6.7.3"


def _fixture_transport(requests: list[str], *, missing: set[str] | None = None) -> httpx.MockTransport:
    missing = missing or set()

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        relative = request.url.path.split("/6.7.3/", 1)[1]
        path = FIXTURE_ROOT / relative
        if relative in missing or not path.is_file():
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=path.read_bytes())

    return httpx.MockTransport(handler)


def test_download_dataset_writes_dist_files(tmp_path: Path) -> None:
    requests: list[str] = []
    client = httpx.Client(transport=_fixture_transport(requests))

    dist_dir = download_dataset(BASE_URL, tmp_path, client=client)

    assert dist_dir == tmp_path / "dist"
    for filename in REQUIRED_FILES.values():
        assert (dist_dir / filename).is_file()
    assert (dist_dir / "translations" / "en.json").is_file()
    assert json.loads((tmp_path / "package.json").read_text())["version"] == "6.7.3"
    assert not list(tmp_path.rglob("*.part"))


def test_missing_required_file_raises_schema_load_error(tmp_path: Path) -> None:
    requests: list[str] = []
    client = httpx.Client(transport=_fixture_transport(requests, missing={"dist/deprecated.json"}))

    with pytest.raises(SchemaLoadError) as excinfo:
        download_dataset(BASE_URL, tmp_path, client=client)

    assert "deprecated.json" in excinfo.value.message
    assert excinfo.value.details == {"url": f"{BASE_URL}/dist/deprecated.json"}


def test_missing_optional_files_are_skipped(tmp_path: Path) -> None:
    requests: list[str] = []
    client = httpx.Client(
        transport=_fixture_transport(requests, missing={"dist/translations/en.json", "package.json"})
    )

    download_dataset(BASE_URL, tmp_path, client=client)

    assert (tmp_path / "dist" / "presets.json").is_file()
    assert not (tmp_path / "dist" / "translations" / "en.json").exists()


def test_source_downloads_once_then_reads_cache(tmp_path: Path) -> None:
    requests: list[str] = []
    client = httpx.Client(transport=_fixture_transport(requests))
    source = DatasetSource(cache_dir=tmp_path, base_url=BASE_URL, client=client)

    first = source.read()
    downloaded = len(requests)
    second = source.read()

    assert downloaded == len(REQUIRED_FILES) + 2
    assert len(requests) == downloaded
    assert first.version == "6.7.3"
    assert second.presets.keys() == first.presets.keys()
    assert "en" in second.translations


def test_source_requires_directory_or_download_location() -> None:
    with pytest.raises(ValueError):
        DatasetSource()


def test_validate_structure_rejects_bad_documents() -> None:
    documents = {
        "presets": {"amenity/cafe": {"tags": {"amenity": "cafe"}}},
        "fields": {"name": {"key": "name", "type": "localized"}},
        "categories": {},
        "deprecated": [],
        "defaults": {},
    }

    with pytest.raises(SchemaLoadError) as excinfo:
        validate_structure(documents)
    assert "amenity/cafe" in excinfo.value.message

    documents["presets"] = {"amenity/cafe": {"tags": {"amenity": "cafe"}, "geometry": ["point"]}}
    documents["deprecated"] = {"old": {}}
    with pytest.raises(SchemaLoadError):
        validate_structure(documents)


def test_invalid_json_in_schema_dir(tmp_path: Path) -> None:
    for filename in REQUIRED_FILES.values():
        (tmp_path / filename).write_text((FIXTURE_ROOT / "dist" / filename).read_text())
    (tmp_path / "fields.json").write_text("{ not json")

    with pytest.raises(SchemaLoadError) as excinfo:
        DatasetSource(schema_dir=tmp_path).read()

    assert "not valid JSON" in excinfo.value.message
