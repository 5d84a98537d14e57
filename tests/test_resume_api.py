import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.cache_store import clear_cache_entries
from app.core.errors import ProviderError
from app.main import app

RESUME = (
    "Jane Doe\njane@example.com\n(555) 123-4567\n"
    "EXPERIENCE\nSenior Backend Engineer at Acme, built Python payment services for 1.2M users.\n"
    "EDUCATION\nBS Computer Science, State University\n"
)
JOB_DESCRIPTION = "Senior Backend Engineer with Python and distributed systems experience."
SCORE_REPLY = json.dumps(
    {
        "score": 71,
        "strengths": ["Python"],
        "weaknesses": ["No cloud"],
        "keywords": ["Python"],
        "improvement_suggestions": ["Add metrics"],
    }
)


class FakeClient:
    def __init__(self, reply: str):
        self.reply = reply

    async def complete(self, messages):
        return self.reply


class ResumeApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        clear_cache_entries()
        self.session_id = "session-abcdef123"

    def _analyze(self, reply: str = SCORE_REPLY, **form):
        data = {
            "job_description": JOB_DESCRIPTION,
            "skills": "Python, SQL",
            "resume": RESUME,
            "session_id": self.session_id,
            **form,
        }
        with patch("app.services.resume_service.get_ai_client", return_value=FakeClient(reply)):
            return self.client.post("/v1/resume/analyze", data=data)

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_analyze_scores_and_saves_session(self):
        response = self._analyze()

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["score"], 71)
        self.assertEqual(body["keywords"], ["Python"])

        session = self.client.get(f"/v1/resume/session/{self.session_id}").json()
        self.assertEqual(session["job_description"], JOB_DESCRIPTION)
        self.assertEqual(session["resume"], RESUME)
        self.assertEqual(session["analysis_result"]["score"], 71)

    def test_analyze_with_uploaded_file_echoes_extracted_text(self):
        with patch("app.services.resume_service.get_ai_client", return_value=FakeClient(SCORE_REPLY)):
            response = self.client.post(
                "/v1/resume/analyze",
                data={"job_description": JOB_DESCRIPTION, "skills": "Python"},
                files={"resume_file": ("resume.txt", RESUME.encode("utf-8"), "text/plain")},
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["extracted_text"], RESUME)
        self.assertEqual(response.json()["resume_source"], "upload")

    def test_analyze_short_resume_is_rejected(self):
        response = self._analyze(resume="too short")
        self.assertEqual(response.status_code, 400)
        self.assertIn("No usable resume text", response.json()["detail"])

    def test_analyze_bad_model_reply_leaves_session_untouched(self):
        response = self._analyze(reply="Sorry, I can't do that.")
        self.assertEqual(response.status_code, 502)

        session = self.client.get(f"/v1/resume/session/{self.session_id}").json()
        self.assertIsNone(session["resume"])
        self.assertIsNone(session["analysis_result"])

    def test_provider_failure_maps_to_503(self):
        with patch(
            "app.services.resume_service.get_ai_client",
            side_effect=ProviderError("OPENAI_API_KEY is missing", code="provider_not_configured"),
        ):
            response = self.client.post(
                "/v1/resume/analyze",
                data={"job_description": JOB_DESCRIPTION, "resume": RESUME},
            )
        self.assertEqual(response.status_code, 503)
        self.assertIn("OPENAI_API_KEY is missing", response.json()["detail"])

    def test_optimize_then_rescore_optimized_view(self):
        self.assertEqual(self._analyze().status_code, 200)

        with patch(
            "app.services.resume_service.get_ai_client",
            return_value=FakeClient("Jane Doe\n" + "Optimized Python backend experience line.\n" * 5),
        ):
            optimized = self.client.post("/v1/resume/optimize", json={"session_id": self.session_id})
        self.assertEqual(optimized.status_code, 200)
        body = optimized.json()
        self.assertTrue(body["optimized_resume"].startswith("Jane Doe"))
        self.assertEqual(body["user_info"]["email"], "jane@example.com")
        self.assertEqual(body["resume_source"], "cache_original")

        with patch("app.services.resume_service.get_ai_client", return_value=FakeClient(SCORE_REPLY)):
            rescored = self.client.post(
                "/v1/resume/rescore",
                json={"session_id": self.session_id, "view": "optimized"},
            )
        self.assertEqual(rescored.status_code, 200)
        self.assertEqual(rescored.json()["resume_source"], "cache_optimized")

    def test_extract_text_from_txt(self):
        response = self.client.post(
            "/v1/resume/extract-text",
            files={"file": ("resume.txt", RESUME.encode("utf-8"), "text/plain")},
            data={"session_id": self.session_id},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "document")
        self.assertEqual(body["text"], RESUME)
        self.assertEqual(body["characters"], len(RESUME))

    def test_extract_text_failure_returns_placeholder_for_session(self):
        response = self.client.post(
            "/v1/resume/extract-text",
            files={"file": ("resume.pdf", b"%PDF-1.4\n%%EOF", "application/pdf")},
            data={"session_id": self.session_id},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "placeholder")
        self.assertIn("could not be extracted", body["text"])

    def test_extract_text_failure_without_session_is_422(self):
        response = self.client.post(
            "/v1/resume/extract-text",
            files={"file": ("resume.pdf", b"%PDF-1.4\n%%EOF", "application/pdf")},
        )
        self.assertEqual(response.status_code, 422)

    def test_extract_text_rejects_unsupported_files(self):
        response = self.client.post(
            "/v1/resume/extract-text",
            files={"file": ("resume.exe", b"MZ", "application/octet-stream")},
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/v1/resume/extract-text",
            files={"file": ("resume.pdf", b"not a pdf", "application/pdf")},
        )
        self.assertEqual(response.status_code, 400)

    def test_identity_endpoint(self):
        response = self.client.post("/v1/resume/identity", json={"resume_text": RESUME})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["name"], "Jane Doe")
        self.assertEqual(body["phone"], "(555) 123-4567")
        self.assertEqual(body["education"], ["BS Computer Science, State University"])

    def test_pdf_download(self):
        response = self.client.post("/v1/resume/pdf", json={"resume_text": RESUME, "generated_date": "2024-05-01"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "application/pdf")
        self.assertIn('filename="Jane_Doe_resume.pdf"', response.headers["content-disposition"])
        self.assertTrue(response.content.startswith(b"%PDF"))

    def test_pdf_download_without_text_is_rejected(self):
        response = self.client.post("/v1/resume/pdf", json={"session_id": self.session_id})
        self.assertEqual(response.status_code, 400)

    def test_session_edit_round_trip(self):
        response = self.client.put(
            f"/v1/resume/session/{self.session_id}",
            json={"view": "optimized", "text": "Edited optimized resume"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["optimized_resume"], "Edited optimized resume")
        self.assertIsNone(response.json()["resume"])

    def test_short_session_id_is_rejected(self):
        self.assertEqual(self.client.get("/v1/resume/session/abc").status_code, 422)


if __name__ == "__main__":
    unittest.main()
