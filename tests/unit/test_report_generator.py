"""
Unit Tests for Report Generator

Tests for:
- Output filename convention
- HTML rendering for both layouts and both pagination strategies
- PDF writer cleanup on failure (WeasyPrint replaced by a test double)
- End-to-end generation against a mocked result API
"""

import sys
import types
from pathlib import Path

import pytest

from result_builder.api_client import ResultApiClient
from result_builder.class_rank_calculator import ClassRankCalculator
from result_builder.config import ResultConfig
from result_builder.errors import RenderError, UpstreamFetchError, ValidationError
from result_builder.report_generator import ReportGenerator, report_filename

BASE_URL = "http://testserver/api"


def ok(data):
    return {"success": True, "data": data}


@pytest.fixture
def config(tmp_path):
    return ResultConfig(output_dir=tmp_path / "reports")


@pytest.fixture
def ranked(sample_results, sample_scale):
    outcome = ClassRankCalculator().calculate_class_rankings(sample_results, sample_scale)
    return outcome.results


@pytest.fixture
def written(monkeypatch):
    """Replace write_pdf with a recorder that writes the HTML to disk"""
    calls = []

    def fake_write_pdf(self, html, output_path, layout="standard"):
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html)
        calls.append({"html": html, "path": output_path, "layout": layout})
        return output_path

    monkeypatch.setattr(ReportGenerator, "write_pdf", fake_write_pdf)
    return calls


class TestReportFilename:
    """Tests for report_filename"""

    def test_convention(self):
        assert (
            report_filename("Terminal", "Obi", "Ada", "First Term", "2024/2025")
            == "Report_Terminal_Obi_Ada_First_Term_2024_2025.pdf"
        )

    def test_unsafe_characters_replaced(self):
        name = report_filename("Standard", 'O"Neil', "Ann:Marie", "Term*1", "2024?")
        assert name == "Report_Standard_O_Neil_Ann_Marie_Term_1_2024_.pdf"
        assert "/" not in name


class TestRenderHtml:
    """Tests for render_html"""

    def test_standard_rows(self, config, ranked, sample_metadata, sample_scale):
        generator = ReportGenerator(config)
        document = generator.build_document(ranked[0], sample_metadata, sample_scale, "standard")
        html = generator.render_html(document, generator.paginate(document, "standard"), "standard")

        assert "report-standard" in html
        assert "Greenfield Academy" in html
        assert "Test Students1" in html
        assert "1st of 5" in html
        assert "Excellent" in html
        assert "Remark" in html
        assert html.count('class="page page-rows"') == 1
        assert 'class="no-print' in html

    def test_terminal_layout_is_compact(self, config, ranked, sample_metadata, sample_scale):
        generator = ReportGenerator(config)
        document = generator.build_document(ranked[3], sample_metadata, sample_scale, "terminal")
        html = generator.render_html(document, generator.paginate(document, "terminal"), "terminal")

        assert "report-terminal" in html
        assert "Terminal Report Card" in html
        assert "4th of 5" in html
        assert "<th>Remark</th>" not in html

    def test_unranked_student_shows_na(self, config, ranked, sample_metadata, sample_scale):
        generator = ReportGenerator(config)
        document = generator.build_document(ranked[4], sample_metadata, sample_scale)
        html = generator.render_html(document, generator.paginate(document))

        assert "1st of" not in html
        assert "N/A" in html

    def test_slice_strategy_offsets(self, tmp_path, make_result, sample_metadata, sample_scale):
        config = ResultConfig(output_dir=tmp_path, pagination_strategy="slice")
        result = make_result("s1", [{"subjectId": f"sub{i}", "exam": 60} for i in range(20)])
        generator = ReportGenerator(config)
        document = generator.build_document(result, sample_metadata, sample_scale)
        paginated = generator.paginate(document)
        html = generator.render_html(document, paginated)

        assert paginated.page_count == 2
        assert html.count('class="page page-slice"') == 2
        assert "margin-top: 0.0mm" in html
        assert f"margin-top: {-paginated.page_height}mm" in html

    def test_user_content_escaped(self, config, make_result, sample_metadata, sample_scale):
        result = make_result("s1", [{"subjectId": "m", "subjectName": "<script>x</script>", "exam": 60}])
        generator = ReportGenerator(config)
        document = generator.build_document(result, sample_metadata, sample_scale)
        html = generator.render_html(document, generator.paginate(document))

        assert "<script>x</script>" not in html
        assert "&lt;script&gt;" in html

    def test_images_passed_through(self, config, ranked, sample_metadata, sample_scale):
        generator = ReportGenerator(config)
        document = generator.build_document(ranked[0], sample_metadata, sample_scale)
        html = generator.render_html(
            document, generator.paginate(document), images={"photo": "/proxy/p.png", "logo": None}
        )
        assert 'src="/proxy/p.png"' in html
        assert "School logo" not in html

    def test_missing_template_is_render_error(self, tmp_path, ranked, sample_metadata, sample_scale):
        generator = ReportGenerator(ResultConfig(output_dir=tmp_path), templates_dir=tmp_path)
        document = generator.build_document(ranked[0], sample_metadata, sample_scale)
        with pytest.raises(RenderError):
            generator.render_html(document, generator.paginate(document))


class TestWritePdf:
    """Tests for write_pdf with WeasyPrint replaced by a test double"""

    def test_partial_file_removed_on_failure(self, config, monkeypatch, tmp_path):
        class FailingHTML:
            def __init__(self, string, base_url=None):
                self.string = string

            def write_pdf(self, target, stylesheets=None):
                Path(target).write_bytes(b"%PDF-1.7 partial")
                raise OSError("disk full")

        fake = types.ModuleType("weasyprint")
        fake.HTML = FailingHTML
        fake.CSS = lambda filename=None, string=None: (filename, string)
        monkeypatch.setitem(sys.modules, "weasyprint", fake)

        output = tmp_path / "out" / "report.pdf"
        with pytest.raises(RenderError, match="disk full"):
            ReportGenerator(config).write_pdf("<html></html>", output)

        assert not output.exists()

    def test_stylesheets_include_page_rule(self, config, monkeypatch, tmp_path):
        seen = {}

        class RecordingHTML:
            def __init__(self, string, base_url=None):
                seen["base_url"] = base_url

            def write_pdf(self, target, stylesheets=None):
                seen["stylesheets"] = stylesheets
                Path(target).write_bytes(b"%PDF-1.7")

        fake = types.ModuleType("weasyprint")
        fake.HTML = RecordingHTML
        fake.CSS = lambda filename=None, string=None: (filename, string)
        monkeypatch.setitem(sys.modules, "weasyprint", fake)

        output = ReportGenerator(config).write_pdf("<html></html>", tmp_path / "r.pdf", "terminal")

        assert output.exists()
        assert seen["stylesheets"][0][0].endswith("styles_terminal.css")
        assert seen["stylesheets"][1][1] == "@page { size: A4; margin: 10mm; }"


class TestGenerateReport:
    """End-to-end generation against a mocked API"""

    @pytest.fixture
    def routes(self, api_routes, sample_results, sample_scale, sample_metadata):
        dump = lambda model: model.model_dump(mode="json", by_alias=True)
        api_routes["/api/results/student/s3/term/t1"] = ok(dump(sample_results[2]))
        api_routes["/api/grade-scales/active"] = ok(dump(sample_scale))
        api_routes["/api/results/report-card/s3/t1"] = ok(dump(sample_metadata))
        api_routes["/api/results"] = ok([dump(r) for r in sample_results])
        for result in sample_results:
            api_routes[f"/api/results/report-card/{result.student_id}/t1"] = ok(dump(sample_metadata))
        return api_routes

    @pytest.mark.asyncio
    async def test_fetches_sequentially_and_writes(self, config, mock_transport, routes, api_calls, written):
        async with ResultApiClient(BASE_URL, transport=mock_transport) as client:
            generator = ReportGenerator(config, api_client=client)
            path = await generator.generate_report("s3", "c1", "t1", layout="terminal")

        assert api_calls == [
            "GET /api/results/student/s3/term/t1",
            "GET /api/grade-scales/active",
            "GET /api/results/report-card/s3/t1",
            "GET /api/results",
        ]
        assert path.name == "Report_Terminal_Students3_Test_First_Term_2024_2025.pdf"
        assert path.parent == config.output_dir
        html = written[0]["html"]
        assert "2nd of 5" in html
        assert "/api/proxy/image?url=https%3A%2F%2Fcdn.example.com%2Flogo.png" in html

    @pytest.mark.asyncio
    async def test_upstream_failure_writes_nothing(self, config, mock_transport, api_routes, written):
        async with ResultApiClient(BASE_URL, transport=mock_transport) as client:
            generator = ReportGenerator(config, api_client=client)
            with pytest.raises(UpstreamFetchError):
                await generator.generate_report("s3", "c1", "t1")

        assert written == []

    @pytest.mark.asyncio
    async def test_class_batch(self, config, mock_transport, routes, written):
        async with ResultApiClient(BASE_URL, transport=mock_transport) as client:
            generator = ReportGenerator(config, api_client=client)
            results = await generator.generate_class_reports("c1", "t1", progress=False)

        assert [r.student_id for r in results] == ["s1", "s2", "s3", "s4", "s5"]
        assert all(r.success for r in results)
        assert len(written) == 5

    @pytest.mark.asyncio
    async def test_missing_selection(self, config, mock_transport, api_calls):
        async with ResultApiClient(BASE_URL, transport=mock_transport) as client:
            generator = ReportGenerator(config, api_client=client)
            with pytest.raises(ValidationError, match="class and term"):
                await generator.generate_class_reports("", " ")

        assert api_calls == []
