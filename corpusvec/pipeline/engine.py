"""
Fork-join execution over chunks of a token stream.

The coordinator splits a stream into ``n_chunks`` disjoint chunks and
hands each to a joblib worker process together with a task function.
Every worker builds its partial result from scratch (no shared state)
and sends it back pickled. Results are consumed in ascending chunk order
and folded into a running accumulator, so the merged output is the same
for any number of chunks and workers.

Any exception inside a worker is re-raised in the coordinator as a
``WorkerFailure`` naming the chunk and, when known, the file. joblib
cancels the outstanding tasks and no partial result is returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from joblib import Parallel, delayed

from corpusvec.data.sources import check_n_chunks
from corpusvec.data.token_stream import TokenStream
from corpusvec.errors import ConfigurationError, WorkerFailure
from corpusvec.utils.pipeline_utils import get_logger
from corpusvec.utils.progress import ProgressReporter, ensure_reporter


Task = Callable[[TokenStream], Any]
Merge = Callable[[Any, Any], Any]


@dataclass
class Chunk:
    """One unit of parallel work: its position and its slice of the stream."""

    index: int
    stream: TokenStream

    def describe(self) -> str:
        return f"chunk {self.index}: {self.stream.describe()}"


def split_chunks(stream: TokenStream, n_chunks: int) -> List[Chunk]:
    """Partition ``stream`` into ``n_chunks`` chunks, indexed from 0."""
    n_chunks = check_n_chunks(n_chunks)
    return [Chunk(index=i, stream=part) for i, part in enumerate(stream.split(n_chunks))]


def run_chunk(task: Task, chunk: Chunk) -> Any:
    """
    Worker entry point: run ``task`` on one chunk.

    Every failure is wrapped with the chunk's identity. A ``ReaderError``
    carries the offending file, which takes precedence over the chunk
    description.
    """
    try:
        return task(chunk.stream)
    except Exception as exc:
        source = getattr(exc, "source", None) or chunk.stream.describe()
        raise WorkerFailure(chunk.index, source, exc) from exc


def _check_n_jobs(n_jobs: Optional[int], n_chunks: int) -> int:
    if n_jobs is None:
        return n_chunks
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs == 0 or n_jobs < -1:
        raise ConfigurationError(f"n_jobs must be a positive integer or -1, got {n_jobs!r}")
    return n_jobs


def run_fork_join(
    chunks: List[Chunk],
    task: Task,
    merge: Merge,
    n_jobs: Optional[int] = None,
    backend: str = "loky",
    reporter: Optional[ProgressReporter] = None,
    desc: str = "",
) -> Any:
    """
    Run ``task`` on every chunk in worker processes and merge the results.

    Parameters
    ----------
    chunks : List[Chunk]
        Output of ``split_chunks``.
    task : Callable[[TokenStream], PartialResult]
        Builds one partial result from one chunk's stream. Must be
        picklable (a module-level function or a partial of one).
    merge : Callable[[PartialResult, PartialResult], PartialResult]
        Associative combine of two partial results.
    n_jobs : Optional[int]
        Worker processes. Defaults to one per chunk; -1 uses all cores.
    backend : str
        joblib backend; the default "loky" runs isolated processes.
    reporter : Optional[ProgressReporter]
        Advanced once per merged chunk.
    desc : str
        Label for the reporter and the log.

    Returns
    -------
    PartialResult
        The merge of every chunk's partial result, in ascending chunk order.

    Raises
    ------
    WorkerFailure
        First worker failure; no partial result is returned.
    """
    if not chunks:
        raise ConfigurationError("No chunks to run")

    logger = get_logger(__name__)
    n_jobs = _check_n_jobs(n_jobs, len(chunks))
    reporter = ensure_reporter(reporter)

    logger.info("Running %s over %d chunks with n_jobs=%d.", desc or "job", len(chunks), n_jobs)

    results = Parallel(n_jobs=n_jobs, backend=backend, return_as="generator")(
        delayed(run_chunk)(task, chunk) for chunk in chunks
    )
    reporter.start(len(chunks), desc=desc)
    try:
        accumulator = None
        for chunk, partial in zip(chunks, results):
            accumulator = partial if accumulator is None else merge(accumulator, partial)
            logger.debug("Merged %s.", chunk.describe())
            reporter.advance(1)
    except WorkerFailure as failure:
        logger.error("%s", failure)
        raise
    finally:
        # Abandoning the generator early cancels the tasks still pending.
        results.close()
        reporter.close()

    return accumulator
