"""
Parallel Fetch Helper
Runs independent vendor listing calls concurrently for catalog synchronization
"""
from concurrent.futures import ThreadPoolExecutor, wait
import logging
import time

logger = logging.getLogger(__name__)


def fetch_collections_parallel(fetch_functions, max_workers=5, timeout=30):
    """
    Execute multiple fetch functions in parallel using ThreadPoolExecutor.

    Failures are isolated: a fetch that raises (or does not finish within
    `timeout`) is reported in the errors dict and the others still return.

    Args:
        fetch_functions: Dict of {name: callable} where callable returns a list
        max_workers: Maximum number of concurrent threads (default: 5)
        timeout: Maximum time to wait for all fetches (default: 30 seconds)

    Returns:
        Tuple (results, errors): {name: list} for successes,
        {name: exception} for failures

    Example:
        results, errors = fetch_collections_parallel({
            'operators': lambda: client.list_operators(),
            'cableTV': lambda: client.list_billers('CABLE_TV'),
        })
    """
    results = {}
    errors = {}

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        future_to_name = {
            executor.submit(func): name
            for name, func in fetch_functions.items()
        }

        done, not_done = wait(future_to_name, timeout=timeout)

        for future in done:
            name = future_to_name[future]
            try:
                results[name] = future.result()
            except Exception as e:
                errors[name] = e
                logger.warning(f"⚠️ Parallel fetch failed for {name}: {e}")

        for future in not_done:
            name = future_to_name[future]
            future.cancel()
            errors[name] = TimeoutError(f"{name} did not complete within {timeout}s")
            logger.warning(f"⚠️ Parallel fetch timed out for {name}")
    finally:
        executor.shutdown(wait=False)

    if errors:
        logger.warning(f"⚠️ Parallel fetch completed with {len(errors)} error(s): {sorted(errors)}")

    return results, errors


def fetch_with_timing(fetch_function, label="Fetch"):
    """
    Wrapper to measure fetch execution time (useful for debugging).
    """
    start_time = time.time()
    results = fetch_function()
    elapsed = time.time() - start_time
    logger.debug(f"⏱️ {label} took {elapsed:.3f}s")
    return results
