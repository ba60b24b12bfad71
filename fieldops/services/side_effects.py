"""
Best-effort side effects

Side effects run after the primary write has committed. Each one is wrapped
individually: its failure is logged and swallowed, never turned into a
dispatch error and never able to stop the others.
"""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Signature shared by inline execution and BackgroundTasks.add_task
Dispatcher = Callable[..., Any]


def run_safely(name: str, func: Callable, *args, **kwargs) -> None:
    try:
        func(*args, **kwargs)
    except Exception as e:
        logger.warning(f"⚠️ Side effect '{name}' failed (ignored): {e}")


def inline_dispatch(func: Callable, *args, **kwargs) -> None:
    """Default dispatcher for direct service use: run now, after commit"""
    func(*args, **kwargs)


def schedule(dispatch: Dispatcher, name: str, func: Callable, *args, **kwargs) -> None:
    """Hand a wrapped side effect to the dispatcher"""
    try:
        dispatch(run_safely, name, func, *args, **kwargs)
    except Exception as e:
        logger.warning(f"⚠️ Could not schedule side effect '{name}': {e}")
