"""File names for synced entries.

Titles become file names inside the data folder. When two different Matter
entries share a title, the later one gets a numeric suffix. The content map
(file name -> entry id) decides whether an existing file already belongs to
the entry being synced.
"""

import re
from typing import Mapping, Optional

from mattersync import vault as vault_mod
from mattersync.vault import Vault

_UNSAFE_CHARS_RE = re.compile(r'[/\\?%*:|"<>]')

EXTENSION = ".md"


def to_filename(title: str) -> str:
    """Replace filesystem-unsafe characters with '-'."""
    return _UNSAFE_CHARS_RE.sub("-", title)


def _owned_name(content_map: Mapping[str, str], base: str, record_id: str) -> Optional[str]:
    """Name already assigned to ``record_id``, preferring one made from ``base``."""
    owned = [name for name, rid in content_map.items() if rid == record_id]
    if not owned:
        return None
    pattern = re.compile(rf"{re.escape(base)}(-\d+)?{re.escape(EXTENSION)}")
    for name in owned:
        if pattern.fullmatch(name):
            return name
    return owned[0]


def resolve_name(
    vault: Vault,
    data_dir: str,
    content_map: Mapping[str, str],
    title: str,
    record_id: str,
) -> str:
    """Return the file name the entry should be written to.

    An entry keeps the name it was first given, even when its file has been
    deleted, so no other entry can take over that name. New entries get the
    first free ``<title>.md``, ``<title>-2.md``, ... name.

    Does not touch the content map; the caller records the association once
    the file is handled, so running this again after a crash lands on the
    same name.
    """
    base = to_filename(title)
    owned = _owned_name(content_map, base, record_id)
    if owned is not None:
        return owned

    name = f"{base}{EXTENSION}"
    i = 1
    while vault.exists(vault_mod.join(data_dir, name)) or name in content_map:
        i += 1
        name = f"{base}-{i}{EXTENSION}"
    return name
