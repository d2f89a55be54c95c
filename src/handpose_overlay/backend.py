"""Runtime compute backend switching for the render loop."""

from __future__ import annotations

import asyncio

from handpose_overlay.exceptions import BackendActivationError
from handpose_overlay.inference import BackendActivator
from handpose_overlay.models import ComputeBackend
from handpose_overlay.render_loop import RenderLoop


class BackendSwitchController:
    """Switch the active compute backend and restart the render loop on it.

    Selections are serialized, so two overlapping switches never leave two
    loops scheduling frames. If activation fails the loop stays stopped and the
    error propagates to the caller.
    """

    def __init__(self, render_loop: RenderLoop, activator: BackendActivator) -> None:
        """Create a backend switch controller.

        :param render_loop:
            Render loop restarted after each switch. Its session records the
            active backend.
        :param activator:
            Collaborator that activates a backend, usually the estimator.
        """
        self._render_loop = render_loop
        self._activator = activator
        self._lock = asyncio.Lock()

    @property
    def backend(self) -> ComputeBackend:
        return self._render_loop.session.backend

    async def select_backend(self, backend: ComputeBackend) -> None:
        """Stop the loop, activate ``backend``, and restart the loop.

        :param backend:
            Backend to activate.
        :raises BackendActivationError:
            If the backend fails to initialize. The loop is not restarted.
        """
        async with self._lock:
            self._render_loop.stop()
            try:
                await self._activator.activate(backend)
            except BackendActivationError:
                raise
            except Exception as exc:
                raise BackendActivationError(
                    f"Failed to activate {backend.value} backend."
                ) from exc

            self._render_loop.session.backend = backend
            self._render_loop.start()
