import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List

# project id -> [lock, number of holders plus waiters]
_project_locks: Dict[str, List] = {}


@asynccontextmanager
async def project_lock(project_id: str) -> AsyncIterator[None]:
    """
    Serialize file mutations on one project within the process.

    The entry lives only while someone holds or waits for the lock, so ids
    that never existed do not pile up.
    """
    entry = _project_locks.get(project_id)
    if entry is None:
        entry = _project_locks[project_id] = [asyncio.Lock(), 0]
    entry[1] += 1
    try:
        async with entry[0]:
            yield
    finally:
        entry[1] -= 1
        if entry[1] == 0 and _project_locks.get(project_id) is entry:
            del _project_locks[project_id]
