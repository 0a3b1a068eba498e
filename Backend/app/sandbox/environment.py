"""
Remote Execution Environment
Thin adapter over E2B sandboxes exposing only the capabilities the
workflow needs: create, connect, run_command, write_file, read_file,
run_code, get_host, kill.
"""

from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from e2b import CommandExitException
from e2b_code_interpreter import AsyncSandbox

from app.core.config import settings
from app.core.logging import log

OutputHandler = Callable[[str], None]


@runtime_checkable
class SandboxHandle(Protocol):
    """Capability set of a live execution environment."""

    @property
    def sandbox_id(self) -> str: ...

    def get_host(self, port: int) -> str: ...

    async def run_command(
        self,
        command: str,
        timeout: float,
        on_stdout: Optional[OutputHandler] = None,
        on_stderr: Optional[OutputHandler] = None,
    ) -> int: ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def read_file(self, path: str) -> str: ...

    async def run_code(self, code: str) -> Any: ...

    async def kill(self) -> None: ...


class EnvironmentFactory(Protocol):
    """Creates or attaches to environments. Slow and fallible."""

    async def create(self, template_id: str, metadata: Dict[str, str], timeout: int) -> SandboxHandle: ...

    async def connect(self, sandbox_id: str) -> SandboxHandle: ...


class E2BEnvironment:
    """SandboxHandle backed by an e2b_code_interpreter AsyncSandbox."""

    def __init__(self, sandbox: AsyncSandbox) -> None:
        self._sandbox = sandbox

    @property
    def sandbox_id(self) -> str:
        return self._sandbox.sandbox_id

    def get_host(self, port: int) -> str:
        return self._sandbox.get_host(port)

    async def run_command(
        self,
        command: str,
        timeout: float,
        on_stdout: Optional[OutputHandler] = None,
        on_stderr: Optional[OutputHandler] = None,
    ) -> int:
        """
        Run a shell command and return its exit code.

        A non-zero exit is reported through the return value. Timeouts and
        transport failures propagate.
        """
        try:
            result = await self._sandbox.commands.run(
                command,
                on_stdout=on_stdout,
                on_stderr=on_stderr,
                timeout=timeout,
            )
            return result.exit_code
        except CommandExitException as e:
            return e.exit_code

    async def write_file(self, path: str, content: str) -> None:
        await self._sandbox.files.write(path, content)

    async def read_file(self, path: str) -> str:
        return await self._sandbox.files.read(path)

    async def run_code(self, code: str) -> Any:
        return await self._sandbox.run_code(code)

    async def kill(self) -> None:
        await self._sandbox.kill()


class E2BEnvironmentFactory:
    """Default factory: provisions real E2B sandboxes."""

    def __init__(self, api_key: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.sandbox.e2b_api_key

    def _auth(self) -> Dict[str, str]:
        # Without an explicit key the SDK reads E2B_API_KEY itself
        return {"api_key": self.api_key} if self.api_key else {}

    async def create(self, template_id: str, metadata: Dict[str, str], timeout: int) -> E2BEnvironment:
        log("SESSION", f"📦 Provisioning E2B sandbox (template={template_id}, timeout={timeout}s)")
        sandbox = await AsyncSandbox.create(
            template=template_id,
            metadata=metadata,
            timeout=timeout,
            **self._auth(),
        )
        log("SESSION", f"✓ Sandbox ready: {sandbox.sandbox_id}")
        return E2BEnvironment(sandbox)

    async def connect(self, sandbox_id: str) -> E2BEnvironment:
        sandbox = await AsyncSandbox.connect(sandbox_id, **self._auth())
        return E2BEnvironment(sandbox)
