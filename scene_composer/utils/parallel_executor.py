"""Parallel Executor - fans scene tasks out to a worker pool and collects every outcome."""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Optional

from scene_composer.core.config import Settings


class ParallelExecutor:
    """Runs independent tasks with bounded concurrency; one failure never cancels the others."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize parallel executor.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.max_parallel_scenes = max(1, getattr(settings, "max_parallel_scenes", 4))

    def execute_batch(
        self,
        tasks: list[Callable],
        task_names: Optional[list[str]] = None,
        max_workers: Optional[int] = None,
    ) -> list[tuple[Any, Optional[Exception]]]:
        """
        Execute a batch of tasks and wait for all of them.

        Results come back in submission order regardless of completion order.

        Args:
            tasks: List of callable tasks to execute
            task_names: Optional list of task names for logging
            max_workers: Maximum number of parallel workers (defaults to max_parallel_scenes)

        Returns:
            List of tuples: (result, exception) for each task
        """
        if not tasks:
            return []

        max_workers = max(1, max_workers or self.max_parallel_scenes)

        def name_of(i: int) -> str:
            return task_names[i] if task_names and i < len(task_names) else f"task_{i+1}"

        if max_workers == 1:
            self.logger.info(f"Sequential execution mode: {len(tasks)} tasks")
            results = []
            for i, task in enumerate(tasks):
                task_name = name_of(i)
                start_time = time.time()
                try:
                    result = task()
                    self.logger.info(f"✅ {task_name} completed in {time.time() - start_time:.2f}s")
                    results.append((result, None))
                except Exception as e:
                    self.logger.error(f"❌ {task_name} failed after {time.time() - start_time:.2f}s: {e}")
                    results.append((None, e))
            return results

        self.logger.info(f"Parallel execution mode: {len(tasks)} tasks with max {max_workers} workers")
        start_time = time.time()
        results: list[tuple[Any, Optional[Exception]]] = [(None, None)] * len(tasks)
        completed_count = 0

        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scene") as executor:
            future_to_index = {}
            for i, task in enumerate(tasks):
                future = executor.submit(task)
                future_to_index[future] = (i, name_of(i))

            for future in as_completed(future_to_index):
                index, task_name = future_to_index[future]
                completed_count += 1
                elapsed = time.time() - start_time
                try:
                    result = future.result()
                    self.logger.info(
                        f"✅ {task_name} completed ({completed_count}/{len(tasks)}) in {elapsed:.2f}s"
                    )
                    results[index] = (result, None)
                except Exception as e:
                    self.logger.error(
                        f"❌ {task_name} failed ({completed_count}/{len(tasks)}) after {elapsed:.2f}s: {e}"
                    )
                    results[index] = (None, e)

        successful = sum(1 for _, error in results if error is None)
        self.logger.info(
            f"Batch complete: {successful}/{len(tasks)} successful in {time.time() - start_time:.2f}s "
            f"(parallelism: {max_workers} workers)"
        )

        return results
