import asyncio
import unittest
from unittest.mock import patch

from fakes import FakeExtractor, make_image, make_result
from schemas.marksheets import AggregateSelection
from services.batch_service import analyze_batch, run_batch_analysis
from services.exceptions import BatchFailure, ExtractionFailure, InvalidInput
from services.llm.base import ImagePayload, MarksheetExtractor
from services.llm.llm_gemini import parse_analysis


class _BarrierExtractor(MarksheetExtractor):
    """Finishes only once every image has started: sequential calls would hang"""

    def __init__(self, expected: int):
        self.expected = expected
        self.started = 0
        self.all_started = asyncio.Event()

    async def extract(self, image: ImagePayload):
        self.started += 1
        if self.started == self.expected:
            self.all_started.set()
        await self.all_started.wait()
        return make_result(image.filename, [("Math", 50)], 50, 100)


class TestAnalyzeBatch(unittest.IsolatedAsyncioTestCase):

    async def test_middle_failure_does_not_abort_batch(self):
        extractor = FakeExtractor({
            "one.jpg": make_result("One", [("Math", 80)], 80, 100),
            "two.jpg": ExtractionFailure("blurry image"),
            "three.jpg": make_result("Three", [("Math", 60)], 60, 100),
        })
        images = [make_image("one.jpg"), make_image("two.jpg"), make_image("three.jpg")]

        outcome = await analyze_batch(images, extractor)

        self.assertEqual(outcome.success_count, 2)
        self.assertEqual(outcome.failure_count, 1)
        self.assertEqual([r.student_name for r in outcome.results], ["One", "Three"])
        self.assertEqual(outcome.failures[0].index, 1)
        self.assertEqual(outcome.failures[0].filename, "two.jpg")
        self.assertIn("blurry image", outcome.failures[0].reason)
        self.assertEqual(outcome.message, "Processed 2 documents. 1 failed.")

    async def test_each_image_extracted_exactly_once(self):
        extractor = FakeExtractor({
            "a.jpg": make_result("A", [("Math", 1)]),
            "b.jpg": ExtractionFailure("bad"),
            "c.jpg": make_result("C", [("Math", 1)]),
        })

        await analyze_batch([make_image("a.jpg"), make_image("b.jpg"), make_image("c.jpg")], extractor)

        self.assertEqual(sorted(extractor.calls), ["a.jpg", "b.jpg", "c.jpg"])

    async def test_calls_run_concurrently(self):
        extractor = _BarrierExtractor(expected=4)
        images = [make_image(f"{i}.jpg") for i in range(4)]

        outcome = await asyncio.wait_for(analyze_batch(images, extractor), timeout=2)

        self.assertEqual(outcome.success_count, 4)

    async def test_results_keep_input_order(self):
        class _SlowFirst(FakeExtractor):
            async def extract(self, image):
                await asyncio.sleep(0.05 if image.filename == "first.jpg" else 0)
                return await super().extract(image)

        extractor = _SlowFirst({
            "first.jpg": make_result("First", [("Math", 1)]),
            "second.jpg": make_result("Second", [("Math", 1)]),
        })

        outcome = await analyze_batch([make_image("first.jpg"), make_image("second.jpg")], extractor)

        self.assertEqual([r.student_name for r in outcome.results], ["First", "Second"])

    async def test_unexpected_exception_counts_as_failure(self):
        extractor = FakeExtractor({
            "ok.jpg": make_result("Ok", [("Math", 1)]),
            "boom.jpg": RuntimeError("connection reset"),
        })

        outcome = await analyze_batch([make_image("ok.jpg"), make_image("boom.jpg")], extractor)

        self.assertEqual(outcome.failure_count, 1)
        self.assertIn("RuntimeError", outcome.failures[0].reason)

    async def test_no_failures_means_no_message(self):
        extractor = FakeExtractor({"a.jpg": make_result("A", [("Math", 1)])})

        outcome = await analyze_batch([make_image("a.jpg")], extractor)

        self.assertIsNone(outcome.message)
        self.assertEqual(outcome.failure_count, 0)

    async def test_all_failures_raise_batch_failure(self):
        extractor = FakeExtractor({
            "a.jpg": ExtractionFailure("unreadable"),
            "b.jpg": ExtractionFailure("unreadable"),
        })

        with self.assertRaises(BatchFailure) as ctx:
            await analyze_batch([make_image("a.jpg"), make_image("b.jpg")], extractor)

        self.assertEqual(ctx.exception.attempted, 2)
        self.assertEqual(len(ctx.exception.failures), 2)
        self.assertEqual(len(extractor.calls), 2)

    async def test_empty_batch_is_a_contract_violation(self):
        with self.assertRaises(InvalidInput):
            await analyze_batch([], FakeExtractor({}))


class TestRunBatchAnalysis(unittest.IsolatedAsyncioTestCase):

    async def test_builds_class_average_and_defaults_to_aggregate_view(self):
        extractor = FakeExtractor({
            "a.jpg": make_result("Asha", [("Math", 80, 100), ("Science", 90, 100)], 170, 200),
            "b.jpg": make_result("Ben", [("math", 60), ("Science", 70)], 130, 200),
            "c.jpg": ExtractionFailure("glare"),
        })

        batch = await run_batch_analysis(
            [make_image("a.jpg"), make_image("b.jpg"), make_image("c.jpg")], extractor
        )

        self.assertTrue(batch.batch_id)
        self.assertEqual(len(batch.results), 2)
        self.assertEqual(batch.failure_count, 1)
        self.assertEqual(batch.message, "Processed 2 documents. 1 failed.")
        self.assertEqual(batch.class_average.student_name, "Class Average")
        self.assertEqual(batch.class_average.percentage, 75)
        self.assertIsInstance(batch.selection, AggregateSelection)

    async def test_total_failure_skips_aggregation(self):
        extractor = FakeExtractor({"a.jpg": ExtractionFailure("nope")})

        with patch("services.batch_service.calculate_class_average") as mock_average:
            with self.assertRaises(BatchFailure):
                await run_batch_analysis([make_image("a.jpg")], extractor)

        mock_average.assert_not_called()

    async def test_non_finite_scores_fail_only_that_image(self):
        class _TextExtractor(MarksheetExtractor):
            texts = {
                "good.jpg": '{"studentName": "Asha", "subjects": [{"subject": "Math", "score": 80}]}',
                "inf.jpg": '{"studentName": "Ben", "subjects": [{"subject": "Math", "score": Infinity}]}',
                "nan.jpg": '{"studentName": "Cai", "subjects": [], "percentage": NaN}',
            }

            async def extract(self, image):
                return parse_analysis(self.texts[image.filename])

        batch = await run_batch_analysis(
            [make_image("good.jpg"), make_image("inf.jpg"), make_image("nan.jpg")], _TextExtractor()
        )

        self.assertEqual([r.student_name for r in batch.results], ["Asha"])
        self.assertEqual([f.filename for f in batch.failures], ["inf.jpg", "nan.jpg"])
        self.assertEqual(batch.class_average.subjects[0].score, 80)


if __name__ == '__main__':
    unittest.main()
