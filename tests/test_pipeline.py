# File: tests/test_pipeline.py
from __future__ import annotations

import asyncio

import pytest

from conftest import SVG_ICON, FakeProvider, make_document, make_node, make_page
from figma_extract.errors import ExportRequestError, FetchError
from figma_extract import pipeline as pipeline_module
from figma_extract.logger import logger
from figma_extract.pipeline import ExportPipeline, PipelineState, clean_ids

URL = "https://s3.example.com/images/x.svg"


@pytest.mark.asyncio()
async def test_single_component_is_saved(make_config, sink, icon_document):
    cfg = make_config(types=["COMPONENT"])
    provider = FakeProvider(icon_document, images={"1:1": URL})
    pipeline = ExportPipeline(provider, cfg, sink=sink)

    assets = await pipeline.extract(cfg.public_path)

    assert [a.to_dict() for a in assets] == [
        {"filename": "icon_1_1.svg", "page_id": "P1", "page": "P1", "type": "COMPONENT"}
    ]
    assert (cfg.public_path / "icon_1_1.svg").read_bytes() == SVG_ICON
    assert pipeline.state is PipelineState.DONE
    assert provider.comment_calls == 0


@pytest.mark.asyncio()
async def test_export_request_uses_selected_ids_format_and_options(make_config, sink, icon_document):
    cfg = make_config(scale=2, svg_simplify_stroke=True)
    provider = FakeProvider(icon_document, images={"1:1": URL})

    await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert provider.export_calls == [
        ("FILEKEY", ["1:1"], "svg", {"scale": 2.0, "svg_include_id": True, "svg_simplify_stroke": True})
    ]


@pytest.mark.asyncio()
async def test_no_match_is_empty_state(make_config, sink):
    document = make_document([make_page("P1", "P1", [make_node("1:1", "FRAME", "icon")])])
    provider = FakeProvider(document, images={"1:1": URL})
    pipeline = ExportPipeline(provider, make_config(types=["COMPONENT"]), sink=sink)

    assert await pipeline.extract() == []
    assert pipeline.state is PipelineState.EMPTY
    assert provider.export_calls == []
    assert "No elements match the specified filters." in sink.messages("warning")


@pytest.mark.asyncio()
@pytest.mark.parametrize("images", [{}, {"1:1": None}])
async def test_empty_or_null_export_map_gives_no_assets(make_config, sink, icon_document, images):
    cfg = make_config()
    provider = FakeProvider(icon_document, images=images)
    pipeline = ExportPipeline(provider, cfg, sink=sink)

    assert await pipeline.extract(cfg.public_path) == []
    assert provider.downloads == []
    assert pipeline.state is PipelineState.DONE
    assert sink.messages("error") == []


@pytest.mark.asyncio()
async def test_null_url_is_skipped_without_error(make_config, sink):
    document = make_document(
        [make_page("P1", "P1", [make_node("1:1", "COMPONENT", "a"), make_node("1:2", "COMPONENT", "b")])]
    )
    cfg = make_config()
    provider = FakeProvider(document, images={"1:1": None, "1:2": URL})

    assets = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert [a.filename for a in assets] == ["b_1_2.svg"]
    assert sink.messages("error") == []


@pytest.mark.asyncio()
async def test_unknown_ids_from_provider_are_ignored(make_config, sink, icon_document):
    cfg = make_config()
    provider = FakeProvider(icon_document, images={"1:1": URL, "7:7": URL + "?other"})

    assets = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert [a.filename for a in assets] == ["icon_1_1.svg"]
    assert provider.downloads == [URL]


@pytest.mark.asyncio()
async def test_failed_download_does_not_abort_siblings(make_config, sink):
    nodes = [make_node(f"1:{i}", "COMPONENT", f"n{i}") for i in range(1, 5)]
    document = make_document([make_page("P1", "P1", nodes)])
    images = {f"1:{i}": f"{URL}?{i}" for i in range(1, 5)}
    cfg = make_config(concurrency=2)
    provider = FakeProvider(document, images=images, failing=[f"{URL}?2"])

    assets = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert sorted(a.filename for a in assets) == ["n1_1_1.svg", "n3_1_3.svg", "n4_1_4.svg"]
    assert len(provider.downloads) == 4
    assert any("1:2" in m for m in sink.messages("error"))
    assert "Saved 3 of 4 assets" in sink.messages("success")


@pytest.mark.asyncio()
async def test_save_error_is_contained(make_config, sink, icon_document):
    cfg = make_config(use_pages_as_folders=True)
    cfg.public_path.mkdir(parents=True)
    # a regular file where the page folder should go
    (cfg.public_path / "P1").write_text("not a directory")
    provider = FakeProvider(icon_document, images={"1:1": URL})

    assets = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert assets == []
    assert any("Failed to extract 1:1" in m for m in sink.messages("error"))


@pytest.mark.asyncio()
async def test_downloads_run_concurrently(make_config, sink):
    nodes = [make_node(f"1:{i}", "COMPONENT", f"n{i}") for i in range(1, 6)]
    document = make_document([make_page("P1", "P1", nodes)])
    images = {f"1:{i}": f"{URL}?{i}" for i in range(1, 6)}

    class SlowProvider(FakeProvider):
        active = 0
        peak = 0

        async def download(self, url):
            SlowProvider.active += 1
            SlowProvider.peak = max(SlowProvider.peak, SlowProvider.active)
            await asyncio.sleep(0.05)
            SlowProvider.active -= 1
            return await super().download(url)

    cfg = make_config(concurrency=3)
    assets = await ExportPipeline(SlowProvider(document, images=images), cfg, sink=sink).extract(
        cfg.public_path
    )

    assert len(assets) == 5
    assert SlowProvider.peak == 3


@pytest.mark.asyncio()
async def test_existing_files_are_kept_with_dont_overwrite(make_config, sink):
    nodes = [make_node("1:1", "COMPONENT", "icon"), make_node("1:2", "COMPONENT", "icon")]
    document = make_document([make_page("P1", "Icons", nodes)])
    cfg = make_config(append_frame_id=False, dont_overwrite=True)
    cfg.public_path.mkdir(parents=True)
    (cfg.public_path / "1_1.svg").write_text("keep me")
    provider = FakeProvider(document, images={"1:1": URL, "1:2": URL + "?2"})

    assets = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert sorted(a.filename for a in assets) == ["1_1_(1).svg", "1_2.svg"]
    assert (cfg.public_path / "1_1.svg").read_text() == "keep me"


@pytest.mark.asyncio()
async def test_background_color_and_page_folders(make_config, sink):
    node = make_node("1:1", "COMPONENT", "icon", backgroundColor={"r": 1, "g": 1, "b": 1, "a": 1})
    document = make_document([make_page("P1", "Icons", [node])])
    cfg = make_config(get_background_color=True, use_pages_as_folders=True, append_page_name=True)
    provider = FakeProvider(document, images={"1:1": URL})

    [asset] = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert asset.filename == "Icons_icon_1_1.svg"
    assert asset.path == cfg.public_path / "Icons" / "Icons_icon_1_1.svg"
    assert asset.path.exists()
    assert asset.to_dict()["background_color"] == "#ffffff"


@pytest.mark.asyncio()
async def test_unresolved_comments_are_attached(make_config, sink, icon_document):
    comments = [
        {"message": "tweak the stroke", "client_meta": {"node_id": "1:1"}, "resolved_at": None},
        {"message": "old news", "client_meta": {"node_id": "1:1"}, "resolved_at": "2024-05-01T10:00:00Z"},
        {"message": "floating", "client_meta": {"x": 1, "y": 1}, "resolved_at": None},
    ]
    cfg = make_config(get_comments=True)
    provider = FakeProvider(icon_document, images={"1:1": URL}, comments=comments)

    [asset] = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert asset.comments == ["tweak the stroke"]
    assert provider.comment_calls == 1


@pytest.mark.asyncio()
async def test_fetch_failure_is_fatal(make_config, sink, icon_document):
    class BrokenProvider(FakeProvider):
        async def fetch_document(self, file_id):
            raise FetchError("GET /files/FILEKEY failed: HTTP 403", 403)

    pipeline = ExportPipeline(BrokenProvider(icon_document), make_config(), sink=sink)
    with pytest.raises(FetchError):
        await pipeline.extract()
    assert pipeline.state is PipelineState.FAILED
    assert any("HTTP 403" in m for m in sink.messages("error"))


@pytest.mark.asyncio()
async def test_export_failure_is_fatal(make_config, sink, icon_document):
    class BrokenProvider(FakeProvider):
        async def request_export(self, file_id, ids, format, **options):
            raise ExportRequestError("Export request failed: Render timeout")

    pipeline = ExportPipeline(BrokenProvider(icon_document), make_config(), sink=sink)
    with pytest.raises(ExportRequestError):
        await pipeline.extract()
    assert pipeline.state is PipelineState.FAILED


def test_clean_ids_drops_blanks():
    assert clean_ids([" 1:1 ", "", "  ", None, "2:2"]) == ["1:1", "2:2"]


class ResettingProvider(FakeProvider):
    """Raises an error outside the extractor's own hierarchy for one URL."""

    def __init__(self, *args, broken: str, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.broken = broken

    async def download(self, url: str) -> bytes:
        if url == self.broken:
            self.downloads.append(url)
            raise ConnectionResetError("connection reset by peer")
        return await super().download(url)


@pytest.mark.asyncio()
async def test_unexpected_download_error_does_not_abort_siblings(make_config, sink):
    nodes = [make_node(f"1:{i}", "COMPONENT", f"n{i}") for i in range(1, 4)]
    document = make_document([make_page("P1", "P1", nodes)])
    images = {f"1:{i}": f"{URL}?{i}" for i in range(1, 4)}
    cfg = make_config()
    provider = ResettingProvider(document, images=images, broken=f"{URL}?2")

    pipeline = ExportPipeline(provider, cfg, sink=sink)
    assets = await pipeline.extract(cfg.public_path)

    assert sorted(a.filename for a in assets) == ["n1_1_1.svg", "n3_1_3.svg"]
    assert pipeline.state is PipelineState.DONE
    assert any("1:2" in m and "ConnectionResetError" in m for m in sink.messages("error"))
    assert "Saved 2 of 3 assets" in sink.messages("success")


@pytest.mark.asyncio()
async def test_path_resolution_error_is_contained(make_config, sink, monkeypatch):
    nodes = [make_node("1:1", "COMPONENT", "ok"), make_node("1:2", "COMPONENT", "locked")]
    document = make_document([make_page("P1", "P1", nodes)])
    cfg = make_config(dont_overwrite=True)
    provider = FakeProvider(document, images={"1:1": f"{URL}?1", "1:2": f"{URL}?2"})
    real_resolve = pipeline_module.resolve_path

    def resolve(record, *args, **kwargs):
        if record.node.id == "1:2":
            raise PermissionError("permission denied")
        return real_resolve(record, *args, **kwargs)

    monkeypatch.setattr(pipeline_module, "resolve_path", resolve)
    assets = await ExportPipeline(provider, cfg, sink=sink).extract(cfg.public_path)

    assert [a.filename for a in assets] == ["ok_1_1.svg"]
    assert any("Failed to extract 1:2" in m for m in sink.messages("error"))


@pytest.mark.asyncio()
async def test_unknown_page_is_reported_once(make_config, sink, icon_document, monkeypatch):
    warnings = []
    monkeypatch.setattr(logger, "warning", lambda msg, *args: warnings.append(msg % args))
    provider = FakeProvider(icon_document, images={"1:1": URL})
    pipeline = ExportPipeline(provider, make_config(page_id="P9"), sink=sink)

    assert await pipeline.extract() == []
    assert pipeline.state is PipelineState.EMPTY
    assert [w for w in warnings if "P9" in w] == ["Page P9 not found in document 'Design System'"]
