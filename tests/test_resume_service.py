import json
import unittest
from io import BytesIO

from reportlab.pdfgen import canvas

from app.core.cache_store import CacheKey, InMemoryCacheStore
from app.core.errors import ModelResponseError, NoUsableResumeText, ValidationError
from app.parsing.models import ParsedDoc
from app.parsing.parse import parse_upload
from app.schemas.resume import ExtractedIdentity, OptimizeRequest, RenderPdfRequest, RescoreRequest, SessionEditRequest
from app.services import resume_service

RESUME = (
    "Jane Doe\njane@example.com\n(555) 123-4567\n"
    "EXPERIENCE\nSenior Backend Engineer at Acme, built Python payment services for 1.2M users.\n"
    "EDUCATION\nBS Computer Science, State University\n"
)
JOB_DESCRIPTION = "Senior Backend Engineer with Python and distributed systems experience."
SCORE_PAYLOAD = {
    "score": 82,
    "strengths": ["Python"],
    "weaknesses": ["No cloud experience"],
    "keywords": ["Python", "distributed systems"],
    "improvement_suggestions": ["Mention AWS"],
}


class FakeClient:
    def __init__(self, reply: str):
        self.reply = reply
        self.calls = []

    async def complete(self, messages):
        self.calls.append(list(messages))
        return self.reply


class ParseScoringResponseTests(unittest.TestCase):
    def test_fenced_json_is_parsed(self):
        raw = (
            '```json\n{"score":75,"strengths":["A"],"weaknesses":["B"],'
            '"keywords":["C"],"improvement_suggestions":["D"]}\n```'
        )
        result = resume_service.parse_scoring_response(raw)

        self.assertEqual(result.score, 75)
        self.assertEqual(result.strengths, ["A"])
        self.assertEqual(result.weaknesses, ["B"])
        self.assertEqual(result.keywords, ["C"])
        self.assertEqual(result.improvement_suggestions, ["D"])

    def test_json_inside_prose_is_parsed(self):
        raw = f"Here is the analysis: {json.dumps(SCORE_PAYLOAD)} Let me know if you need more."
        self.assertEqual(resume_service.parse_scoring_response(raw).score, 82)

    def test_missing_keywords_fails(self):
        payload = {key: value for key, value in SCORE_PAYLOAD.items() if key != "keywords"}
        with self.assertRaises(ModelResponseError):
            resume_service.parse_scoring_response(json.dumps(payload))

    def test_out_of_range_score_fails(self):
        with self.assertRaises(ModelResponseError):
            resume_service.parse_scoring_response(json.dumps({**SCORE_PAYLOAD, "score": 140}))

    def test_non_json_reply_fails(self):
        for raw in ("", "I cannot help with that.", "{not json}", "[1, 2, 3]"):
            with self.assertRaises(ModelResponseError):
                resume_service.parse_scoring_response(raw)


class ScoreAndOptimizeTests(unittest.IsolatedAsyncioTestCase):
    async def test_score_returns_result(self):
        client = FakeClient(json.dumps(SCORE_PAYLOAD))

        result = await resume_service.score(JOB_DESCRIPTION, RESUME, "Python", client=client)

        self.assertEqual(result.score, 82)
        self.assertEqual(len(client.calls), 1)
        self.assertIn(JOB_DESCRIPTION, client.calls[0][-1].content)

    async def test_score_rejects_missing_inputs_before_calling_model(self):
        client = FakeClient(json.dumps(SCORE_PAYLOAD))

        with self.assertRaises(ValidationError):
            await resume_service.score("   ", RESUME, "Python", client=client)
        with self.assertRaises(NoUsableResumeText):
            await resume_service.score(JOB_DESCRIPTION, "short resume", "Python", client=client)
        with self.assertRaises(NoUsableResumeText):
            await resume_service.score(JOB_DESCRIPTION, "%PDF-1.4" + "x" * 200, "Python", client=client)
        self.assertEqual(client.calls, [])

    async def test_optimize_returns_model_text(self):
        client = FakeClient("  Jane Doe\nOptimized resume body  ")

        optimized = await resume_service.optimize(JOB_DESCRIPTION, RESUME, "Python", client=client)

        self.assertEqual(optimized, "Jane Doe\nOptimized resume body")
        self.assertIn("Name: Not provided", client.calls[0][-1].content)

    async def test_optimize_empty_reply_fails(self):
        with self.assertRaises(ModelResponseError):
            await resume_service.optimize(JOB_DESCRIPTION, RESUME, "Python", client=FakeClient("   "))


class SessionFlowTests(unittest.IsolatedAsyncioTestCase):
    async def test_analyze_submission_caches_on_success(self):
        store = InMemoryCacheStore()
        client = FakeClient(json.dumps(SCORE_PAYLOAD))

        response = await resume_service.analyze_submission(
            job_description=JOB_DESCRIPTION,
            skills="Python",
            resume_text=RESUME,
            store=store,
            client=client,
        )

        self.assertEqual(response.score, 82)
        self.assertEqual(response.resume_source, "form")
        self.assertIsNone(response.extracted_text)
        self.assertEqual(store.get(CacheKey.RESUME), RESUME)
        self.assertEqual(json.loads(store.get(CacheKey.ANALYSIS_RESULT))["score"], 82)
        self.assertIsNone(store.get(CacheKey.EXTRACTED_RESUME_TEXT))

    async def test_analyze_submission_prefers_uploaded_text(self):
        store = InMemoryCacheStore()
        upload = ParsedDoc(doc_id="abc", filename="resume.txt", source_type="txt", text=RESUME)

        response = await resume_service.analyze_submission(
            job_description=JOB_DESCRIPTION,
            skills="Python",
            resume_text="",
            upload=upload,
            store=store,
            client=FakeClient(json.dumps(SCORE_PAYLOAD)),
        )

        self.assertEqual(response.resume_source, "upload")
        self.assertEqual(response.extracted_text, RESUME)
        self.assertEqual(store.get(CacheKey.EXTRACTED_RESUME_TEXT), RESUME)

    async def test_rescore_backfills_and_caches_only_on_success(self):
        store = InMemoryCacheStore(
            {
                CacheKey.JOB_DESCRIPTION: JOB_DESCRIPTION,
                CacheKey.SKILLS: "Python",
                CacheKey.EXTRACTED_RESUME_TEXT: RESUME,
            }
        )
        request = RescoreRequest(session_id="session-0001", view="original")

        with self.assertRaises(ModelResponseError):
            await resume_service.rescore_session(request, store, client=FakeClient("not json"))
        self.assertIsNone(store.get(CacheKey.RESUME))
        self.assertIsNone(store.get(CacheKey.ANALYSIS_RESULT))

        response = await resume_service.rescore_session(request, store, client=FakeClient(json.dumps(SCORE_PAYLOAD)))

        self.assertEqual(response.resume_source, "cache_extracted")
        self.assertEqual(store.get(CacheKey.RESUME), RESUME)
        self.assertEqual(response.state_updates["resume"], RESUME)
        self.assertIn("analysis_result", response.state_updates)

    async def test_rescore_without_resume_fails(self):
        store = InMemoryCacheStore({CacheKey.JOB_DESCRIPTION: JOB_DESCRIPTION})
        request = RescoreRequest(session_id="session-0001", view="optimized")

        with self.assertRaises(NoUsableResumeText):
            await resume_service.rescore_session(request, store, client=FakeClient(json.dumps(SCORE_PAYLOAD)))

    async def test_optimize_session_caches_result_and_identity(self):
        store = InMemoryCacheStore({CacheKey.JOB_DESCRIPTION: JOB_DESCRIPTION, CacheKey.RESUME: RESUME})
        client = FakeClient("Jane Doe\nOptimized resume body")

        response = await resume_service.optimize_session(
            OptimizeRequest(session_id="session-0001", skills="Python"),
            store,
            client=client,
        )

        self.assertEqual(response.optimized_resume, "Jane Doe\nOptimized resume body")
        self.assertEqual(response.user_info.name, "Jane Doe")
        self.assertEqual(response.resume_source, "cache_original")
        self.assertEqual(store.get(CacheKey.OPTIMIZED_RESUME), "Jane Doe\nOptimized resume body")
        self.assertEqual(json.loads(store.get(CacheKey.USER_INFO))["email"], "jane@example.com")
        self.assertIn("Name: Jane Doe", client.calls[0][-1].content)


class SessionStateTests(unittest.TestCase):
    def test_extract_upload_stores_usable_text(self):
        store = InMemoryCacheStore()
        upload = ParsedDoc(doc_id="abc", filename="resume.txt", source_type="txt", text=RESUME)

        response = resume_service.extract_upload(upload, store)

        self.assertEqual(response.source, "document")
        self.assertEqual(store.get(CacheKey.EXTRACTED_RESUME_TEXT), RESUME)

    def test_extract_upload_falls_back_to_placeholder(self):
        store = InMemoryCacheStore({CacheKey.SKILLS: "Python, SQL"})
        upload = ParsedDoc(doc_id="abc", filename="resume.pdf", source_type="pdf", text="")

        response = resume_service.extract_upload(upload, store)

        self.assertEqual(response.source, "placeholder")
        self.assertIn("Python, SQL", response.text)
        self.assertEqual(store.get(CacheKey.RESUME), response.text)

    def test_extract_upload_keeps_existing_session_resume(self):
        store = InMemoryCacheStore({CacheKey.RESUME: RESUME})
        upload = ParsedDoc(doc_id="abc", filename="resume.pdf", source_type="pdf", text="")

        response = resume_service.extract_upload(upload, store)

        self.assertEqual(response.source, "session")
        self.assertEqual(response.text, RESUME)

    def test_short_real_pdf_upload_keeps_session_resume(self):
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer)
        pdf.drawString(72, 800, "Jane Doe")
        pdf.drawString(72, 784, "Engineer")
        pdf.showPage()
        pdf.save()
        store = InMemoryCacheStore({CacheKey.RESUME: RESUME, CacheKey.EXTRACTED_RESUME_TEXT: RESUME})

        response = resume_service.extract_upload(parse_upload("resume.pdf", buffer.getvalue()), store)

        self.assertEqual(response.source, "session")
        self.assertEqual(response.text, RESUME)
        self.assertEqual(store.get(CacheKey.RESUME), RESUME)
        self.assertEqual(store.get(CacheKey.EXTRACTED_RESUME_TEXT), RESUME)

    def test_save_session_edit_per_view(self):
        store = InMemoryCacheStore()

        resume_service.save_session_edit(store, SessionEditRequest(view="original", text="edited original"))
        resume_service.save_session_edit(store, SessionEditRequest(view="optimized", text="edited optimized"))

        self.assertEqual(store.get(CacheKey.RESUME), "edited original")
        self.assertEqual(store.get(CacheKey.EXTRACTED_RESUME_TEXT), "edited original")
        self.assertEqual(store.get(CacheKey.OPTIMIZED_RESUME), "edited optimized")

    def test_save_session_edit_rejects_pdf_bytes(self):
        with self.assertRaises(ValidationError):
            resume_service.save_session_edit(InMemoryCacheStore(), SessionEditRequest(text="%PDF-1.4 binary"))

    def test_load_session_tolerates_corrupt_json(self):
        store = InMemoryCacheStore(
            {
                CacheKey.RESUME: RESUME,
                CacheKey.ANALYSIS_RESULT: "{broken",
                CacheKey.USER_INFO: ExtractedIdentity(name="Jane Doe").model_dump_json(),
            }
        )

        state = resume_service.load_session("session-0001", store)

        self.assertEqual(state.resume, RESUME)
        self.assertIsNone(state.analysis_result)
        self.assertEqual(state.user_info.name, "Jane Doe")

    def test_pdf_download_prefers_saved_identity(self):
        store = InMemoryCacheStore(
            {
                CacheKey.OPTIMIZED_RESUME: "Someone Else\nother@example.com\n" + "Optimized body line\n" * 10,
                CacheKey.USER_INFO: ExtractedIdentity(name="Jane Doe", email="jane@example.com").model_dump_json(),
            }
        )

        content, filename = resume_service.render_pdf_download(RenderPdfRequest(view="optimized"), store)

        self.assertTrue(content.startswith(b"%PDF"))
        self.assertEqual(filename, "Jane_Doe_optimized_resume.pdf")

    def test_pdf_download_requires_text(self):
        with self.assertRaises(ValidationError):
            resume_service.render_pdf_download(RenderPdfRequest())


if __name__ == "__main__":
    unittest.main()
