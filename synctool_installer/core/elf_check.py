"""
ELF check — describe a binary on disk before and after stripping.

Responsibilities:
  - Hash and size the file, record whether it is executable.
  - Validate that it is an ELF binary and read type, machine and build-id.
  - Detect presence of .debug_* sections.

Presence check only, no DWARF parsing.  A file that is not ELF is
described with ``is_elf=False`` instead of raising.
"""
import logging
import os
from pathlib import Path
from typing import List, Optional

from elftools.elf.elffile import ELFFile

from synctool_installer.receipt import ArtifactMeta, DebugPresence, ElfMeta, hash_file

logger = logging.getLogger(__name__)


def _read_build_id(elffile: ELFFile) -> Optional[str]:
    """Read GNU build-id from .note.gnu.build-id section."""
    section = elffile.get_section_by_name(".note.gnu.build-id")
    if section is None:
        return None
    for note in section.iter_notes():
        if note["n_type"] == "NT_GNU_BUILD_ID":
            return note["n_desc"]
    return None


def debug_sections(path: Path) -> List[str]:
    """
    Names of .debug_* sections in *path*.

    Raises
    ------
    ELFError
        If the file is not a valid ELF binary.
    """
    with open(path, "rb") as f:
        elffile = ELFFile(f)
        return [
            s.name for s in elffile.iter_sections()
            if s.name.startswith(".debug_")
        ]


def inspect_binary(path: Path) -> ArtifactMeta:
    """Hash, size and ELF facts for *path*. The file must exist."""
    path = Path(path)
    meta = ArtifactMeta(
        path=str(path),
        sha256=hash_file(path),
        size_bytes=path.stat().st_size,
        executable=os.access(path, os.X_OK),
    )

    try:
        with open(path, "rb") as f:
            elffile = ELFFile(f)
            sections = [s.name for s in elffile.iter_sections()]
            elf_meta = ElfMeta(
                elf_type=elffile.header["e_type"],
                arch=elffile.header["e_machine"],
                build_id=_read_build_id(elffile),
            )
    except Exception as e:
        logger.debug("%s is not an ELF binary: %s", path, e)
        return meta

    meta.is_elf = True
    meta.elf = elf_meta
    found = [n for n in sections if n.startswith(".debug_")]
    meta.debug_presence = DebugPresence(
        has_debug_sections=len(found) > 0,
        debug_sections=found,
    )
    return meta
