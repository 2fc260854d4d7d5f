"""Generate a full question paper and stream progress while doing it.

Subjects are generated concurrently in fixed-size batches. While a batch is
in flight a heartbeat task emits estimated progress so the client sees the
stream move; it is cancelled when generation finishes, fails, or the
consumer stops listening. A subject that raises cancels the rest of its
batch before the error event is sent. The collected questions are
shuffled and handed to the question paper store in one call.

Progress scale: 0-90 generation, 95 saving, 100 complete.
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager, suppress
from datetime import datetime
from typing import AsyncIterator, Callable, Iterator, List, Optional, Sequence, Tuple

from app.config import GenerationConfig
from app.db.question_papers import QuestionPaperStore
from app.models.generation import GenerationProgressEvent, SubjectRequest
from app.models.question import CanonicalQuestion, Category
from app.services.subject_generator import SubjectGenerator

logger = logging.getLogger(__name__)

GENERATION_PROGRESS_CEILING = 90.0
SAVING_PROGRESS = 95.0
COMPLETE_PROGRESS = 100.0

# Share of the remaining gap to the current batch's end covered per heartbeat
HEARTBEAT_STEP = 0.2

EventSink = Callable[[Optional[GenerationProgressEvent]], None]
SubjectJob = Tuple[SubjectRequest, Category]


class ProgressTracker:
    """Maps completed subjects onto the 0-90 generation range.

    Progress only moves forward. Heartbeat estimates creep toward the end of
    the batch in flight but never reach it; a real completion always lands
    at least on its exact boundary.
    """

    def __init__(self, total_subjects: int):
        self.total = total_subjects
        self.completed = 0
        self.in_flight = 0
        self.progress = 0.0

    def _boundary(self, completed: int) -> float:
        if self.total == 0:
            return GENERATION_PROGRESS_CEILING
        return GENERATION_PROGRESS_CEILING * completed / self.total

    def start_batch(self, size: int) -> None:
        self.in_flight = size

    def subject_done(self) -> float:
        self.completed += 1
        self.in_flight = max(self.in_flight - 1, 0)
        self.progress = max(self.progress, self._boundary(self.completed))
        return round(self.progress, 1)

    def estimate(self) -> float:
        target = self._boundary(self.completed + self.in_flight)
        if target > self.progress:
            self.progress += (target - self.progress) * HEARTBEAT_STEP
        return round(self.progress, 1)

    def status_line(self) -> str:
        return f"Generating questions... ({self.completed}/{self.total} subjects done)"


class PaperOrchestrator:
    """Runs one stateless paper generation.

    Args:
        config: Resolved generation configuration
        store: Persistence collaborator receiving the finished paper
        subject_generator: Per-subject generator (built from config if omitted)
        rng: Random source for the question shuffle
        clock: Returns the current time, used in the paper title
    """

    def __init__(
        self,
        config: GenerationConfig,
        store: QuestionPaperStore,
        subject_generator: Optional[SubjectGenerator] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.store = store
        self.subject_generator = subject_generator or SubjectGenerator(config)
        self._rng = rng or random.Random()
        self._clock = clock

    def paper_title(self) -> str:
        return f"{self.config.title_prefix} - {self._clock().strftime('%d/%m/%Y')}"

    def _batches(self, jobs: List[SubjectJob]) -> Iterator[List[SubjectJob]]:
        size = self.config.batch_size or len(jobs) or 1
        for start in range(0, len(jobs), size):
            yield jobs[start:start + size]

    async def run(
        self,
        technical_subjects: Sequence[SubjectRequest],
        non_technical_subjects: Sequence[SubjectRequest],
    ) -> AsyncIterator[GenerationProgressEvent]:
        """Yield progress events ending in a ``complete`` or ``error`` event."""
        queue: asyncio.Queue[Optional[GenerationProgressEvent]] = asyncio.Queue()
        producer = asyncio.create_task(
            self._produce(technical_subjects, non_technical_subjects, queue.put_nowait)
        )
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            if not producer.done():
                producer.cancel()
            with suppress(asyncio.CancelledError):
                await producer

    @asynccontextmanager
    async def _heartbeat(self, tracker: ProgressTracker, emit: EventSink) -> AsyncIterator[None]:
        async def beat() -> None:
            while True:
                await asyncio.sleep(self.config.heartbeat_interval_seconds)
                emit(GenerationProgressEvent(
                    progress=tracker.estimate(), subject=tracker.status_line()
                ))

        task = asyncio.create_task(beat())
        try:
            yield
        finally:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _generate_subject(
        self,
        subject: SubjectRequest,
        category: Category,
        tracker: ProgressTracker,
        emit: EventSink,
    ) -> List[CanonicalQuestion]:
        questions = await self.subject_generator.generate(subject, category)
        emit(GenerationProgressEvent(
            progress=tracker.subject_done(),
            subject=f"Generated {subject.name} ({len(questions)} questions)",
        ))
        return questions

    async def _run_batch(
        self, batch: List[SubjectJob], tracker: ProgressTracker, emit: EventSink
    ) -> List[List[CanonicalQuestion]]:
        """Generate a batch concurrently; a failure cancels the rest of the batch."""
        tasks = [
            asyncio.create_task(self._generate_subject(subject, category, tracker, emit))
            for subject, category in batch
        ]
        try:
            return await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _produce(
        self,
        technical_subjects: Sequence[SubjectRequest],
        non_technical_subjects: Sequence[SubjectRequest],
        emit: EventSink,
    ) -> None:
        jobs: List[SubjectJob] = [(s, "technical") for s in technical_subjects]
        jobs += [(s, "non_technical") for s in non_technical_subjects]
        tracker = ProgressTracker(len(jobs))

        try:
            logger.info(f"Starting paper generation for {len(jobs)} subjects")
            questions: List[CanonicalQuestion] = []

            async with self._heartbeat(tracker, emit):
                for batch in self._batches(jobs):
                    tracker.start_batch(len(batch))
                    names = ", ".join(subject.name for subject, _ in batch)
                    emit(GenerationProgressEvent(
                        progress=round(tracker.progress, 1), subject=f"Generating {names}..."
                    ))
                    results = await self._run_batch(batch, tracker, emit)
                    for subject_questions in results:
                        questions.extend(subject_questions)

            self._rng.shuffle(questions)

            emit(GenerationProgressEvent(
                progress=SAVING_PROGRESS, subject="Saving...", status="saving"
            ))
            paper = await self.store.save_paper(
                self.paper_title(),
                questions,
                self.config.total_marks,
                self.config.duration_minutes,
            )

            logger.info(f"Saved paper {paper.id} with {len(questions)} questions")
            emit(GenerationProgressEvent(
                progress=COMPLETE_PROGRESS, status="complete", paper_id=str(paper.id)
            ))
        except Exception as e:
            logger.error(f"Paper generation failed: {e}", exc_info=True)
            emit(GenerationProgressEvent(
                progress=round(tracker.progress, 1), error=str(e) or type(e).__name__
            ))
        finally:
            emit(None)
