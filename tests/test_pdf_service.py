import unittest
from unittest.mock import patch

from fakes import make_result
from services.pdf_service import PDFService, format_score, report_filename, snapshot_data_uri


class TestPDFService(unittest.TestCase):

    def setUp(self):
        self.service = PDFService()
        self.record = make_result("Riya  Sharma", [("Math", 80), ("Science", 72.5)], 152.5, 200)

    def test_report_html_contents(self):
        html = self.service.render_report_html(self.record, title="Riya  Sharma")

        self.assertIn("Performance Analytics Report", html)
        self.assertIn("Name: Riya  Sharma", html)
        self.assertIn("Average Score: 76", html)
        self.assertIn("<td>Science</td><td>72.5</td>", html)
        self.assertIn("<td>Math</td><td>80</td>", html)
        self.assertIn("Analysis Summary", html)
        self.assertIn("Keep practicing.", html)
        self.assertIn('class="bars"', html)

    def test_snapshot_replaces_bar_rendering(self):
        html = self.service.render_report_html(self.record, title="x", snapshot="iVBORw0KGgo=")

        self.assertIn('src="data:image/png;base64,iVBORw0KGgo="', html)
        self.assertNotIn('class="bars"', html)

    def test_text_is_escaped(self):
        record = make_result("<b>Eve</b>", [("Math", 50)], 50, 100)
        html = self.service.render_report_html(record, title="Eve")
        self.assertIn("&lt;b&gt;Eve&lt;/b&gt;", html)

    def test_generate_report_pdf_converts_rendered_html(self):
        with patch.object(PDFService, "_html_to_pdf", return_value=b"%PDF-1.7") as mock_pdf:
            pdf = self.service.generate_report_pdf(self.record, title="Riya")

        self.assertEqual(pdf, b"%PDF-1.7")
        self.assertIn("Riya  Sharma", mock_pdf.call_args[0][0])

    def test_helpers(self):
        self.assertEqual(report_filename(self.record), "Riya_Sharma_Analytics.pdf")
        self.assertEqual(format_score(80.0), "80")
        self.assertEqual(format_score(72.5), "72.5")
        self.assertIsNone(snapshot_data_uri(None))
        self.assertEqual(snapshot_data_uri("data:image/png;base64,AAA"), "data:image/png;base64,AAA")


if __name__ == '__main__':
    unittest.main()
