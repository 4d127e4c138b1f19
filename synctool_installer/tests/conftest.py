"""
Shared pytest fixtures for synctool_installer tests.

Provides fake toolchains (small executable shell scripts) so the pipeline
can be driven without cargo, and on-the-fly gcc compilation of a minimal
C program for the tests that need a real ELF binary with debug info.

Every fake tool answers ``--version`` and appends its name to a shared
event log, so tests can assert exactly which commands ran.
"""
import os
import shutil
import subprocess
import tempfile
import textwrap
from pathlib import Path

import pytest

from synctool_installer.config import PipelineConfig
from synctool_installer.policy.profile import BuildProfile

MINIMAL_C = textwrap.dedent("""\
    #include <stdio.h>

    static int add(int a, int b) {
        return a + b;
    }

    int main(void) {
        printf("sync %d\\n", add(3, 4));
        return 0;
    }
""")

# Release artifact used when no compiler is needed: a runnable script.
SCRIPT_ARTIFACT = "#!/bin/sh\\necho synctool\\n"


def write_tool(path: Path, name: str, body: str, log: Path) -> Path:
    """Write an executable fake tool that logs its invocation."""
    script = textwrap.dedent(f"""\
        #!/bin/sh
        if [ "$1" = "--version" ]; then
            echo "{name} 0.0.0-fake"
            exit 0
        fi
        echo "{name}" >> "{log}"
    """) + textwrap.dedent(body)
    path.write_text(script)
    path.chmod(0o755)
    return path


@pytest.fixture(autouse=True)
def posix_only():
    if os.name != "posix":
        pytest.skip("fake toolchains are POSIX shell scripts")


@pytest.fixture
def event_log(tmp_path) -> Path:
    log = tmp_path / "events.log"
    log.touch()
    return log


@pytest.fixture
def events(event_log):
    """Callable returning the names of the fake tools that ran, in order."""
    return lambda: event_log.read_text().split()


@pytest.fixture
def bin_dir(tmp_path) -> Path:
    d = tmp_path / "bin"
    d.mkdir()
    return d


@pytest.fixture
def project(tmp_path) -> Path:
    """Working context holding a tiny C source file."""
    d = tmp_path / "project"
    d.mkdir()
    (d / "main.c").write_text(MINIMAL_C)
    return d


@pytest.fixture
def home(tmp_path, monkeypatch) -> Path:
    """A fake home directory with the prog/ deployment directory."""
    h = tmp_path / "home"
    (h / "prog").mkdir(parents=True)
    monkeypatch.setenv("HOME", str(h))
    return h


@pytest.fixture
def deploy_path(home) -> Path:
    return home / "prog" / "sync"


# ── Fake tools ──────────────────────────────────────────────────────────────

@pytest.fixture
def cargo_ok(bin_dir, event_log) -> Path:
    """Builds a shell-script artifact at target/release/synctool."""
    return write_tool(bin_dir / "cargo", "build", f"""\
        mkdir -p target/release
        printf '{SCRIPT_ARTIFACT}' > target/release/synctool
        chmod 755 target/release/synctool
        """, event_log)


@pytest.fixture
def cargo_fail(bin_dir, event_log) -> Path:
    """Fails like a rustc compile error."""
    return write_tool(bin_dir / "cargo", "build", """\
        echo "error[E0425]: cannot find value" >&2
        exit 101
        """, event_log)


@pytest.fixture
def cargo_no_artifact(bin_dir, event_log) -> Path:
    """Exits 0 without producing the artifact."""
    return write_tool(bin_dir / "cargo", "build", "exit 0\n", event_log)


@pytest.fixture
def cargo_gcc(bin_dir, event_log) -> Path:
    """Compiles main.c with debug info using gcc."""
    return write_tool(bin_dir / "cargo", "build", """\
        mkdir -p target/release
        gcc -g -O2 -std=c11 -o target/release/synctool main.c
        """, event_log)


@pytest.fixture
def strip_ok(bin_dir, event_log) -> Path:
    return write_tool(bin_dir / "strip", "strip", "exit 0\n", event_log)


@pytest.fixture
def strip_fail(bin_dir, event_log) -> Path:
    return write_tool(bin_dir / "strip", "strip", """\
        echo "strip: $1: file format not recognized" >&2
        exit 3
        """, event_log)


def _make_config(project, deploy_path, cargo, strip="strip", **kwargs) -> PipelineConfig:
    base = BuildProfile.release()
    profile = BuildProfile(
        profile_id=base.profile_id,
        toolchain=str(cargo),
        build_args=base.build_args,
        output_subdir=base.output_subdir,
        binary_name=base.binary_name,
        strip_program=str(strip),
        strip_args=base.strip_args,
    )
    return PipelineConfig(
        project_dir=project,
        deploy_path=deploy_path,
        profile=profile,
        **kwargs,
    )


@pytest.fixture
def make_config(project, deploy_path):
    """Factory: config using the release profile with the given tool paths."""
    def factory(cargo, strip="strip", **kwargs):
        return _make_config(project, deploy_path, cargo, strip, **kwargs)
    return factory


# ── gcc / strip availability ────────────────────────────────────────────────

def _gcc_produces_elf() -> bool:
    """True when gcc is on PATH and emits ELF binaries."""
    if shutil.which("gcc") is None:
        return False
    with tempfile.TemporaryDirectory() as tmpdir:
        src = Path(tmpdir) / "hello.c"
        out = Path(tmpdir) / "hello"
        src.write_text("int main(void) { return 0; }")
        try:
            subprocess.run(
                ["gcc", str(src), "-o", str(out)],
                check=True,
                capture_output=True,
                timeout=30,
            )
        except (OSError, subprocess.SubprocessError):
            return False
        return out.exists() and out.read_bytes()[:4] == b"\x7fELF"


@pytest.fixture(scope="session")
def gcc_ok():
    """Skip tests if gcc/strip are unavailable or gcc does not produce ELF."""
    if shutil.which("strip") is None:
        pytest.skip("strip not available - install binutils to run these tests")
    if not _gcc_produces_elf():
        pytest.skip("gcc not available or does not produce ELF binaries")
