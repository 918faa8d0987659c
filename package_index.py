import re
from typing import Dict, Iterable, List, Optional

from debian.debian_support import Version

from analyzer_errors import IndexReadError, PackageNotFoundError

"""
Parsing of Debian `Packages` indexes into lookup tables.

A Packages file is a series of RFC822-style stanzas separated by blank lines.
We only care about three fields per stanza: Package, Version and Depends.

This parser is deliberately NOT a full deb822 implementation:
 - continuation lines (leading space or tab) are dropped, not folded into the
   previous field. A Depends field that wraps onto a second line is truncated.
 - lines without a colon are skipped, unknown fields are skipped.
 - no architecture qualifiers, Provides, Pre-Depends, Conflicts, Breaks.

Malformed lines are never fatal. Only a failure of the underlying stream is.
"""

##############################################################################
# Data structures
##############################################################################

class PackageRecord:
    """
    ONE binary package entry from a Packages stanza.

     - name: Package (never empty, stanzas without a name are dropped)
     - version: Version ('' if the stanza had none)
     - dependency_names: candidate names extracted from Depends, in field order.
       See extract_dependency_names() for what survives extraction.

    Records are built once by the parser and, by convention, never modified
    afterwards; nothing enforces it. Equality compares all three fields.
    Several records may share a name when the index carries several versions.
    """
    __slots__ = ("name", "version", "dependency_names")

    def __init__(self, name: str, version: str, dependency_names: List[str]):
        self.name = name
        self.version = version or ""
        self.dependency_names = list(dependency_names or [])

    def __repr__(self) -> str:
        return f"PackageRecord({self.name!r}, {self.version!r}, {self.dependency_names!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PackageRecord):
            return NotImplemented
        return (self.name, self.version, self.dependency_names) == \
            (other.name, other.version, other.dependency_names)


# name -> every record with that name, in document order
PackageIndex = Dict[str, List[PackageRecord]]


##############################################################################
# Dependency field extraction
##############################################################################

# Leading package-like token. Upper case is accepted on purpose so that
# hand-written test repositories with names like "A", "B" work.
_DEP_NAME_RE = re.compile(r'[a-zA-Z0-9][a-zA-Z0-9+\-.]*')


def extract_dependency_names(dep_field_val: str) -> List[str]:
    """
    Reduce a Depends value to the list of package names we will follow.

        "libc6 (>= 2.34), default-dbus | dbus-session-bus, perl:any"
          -> ["libc6", "default-dbus", "perl"]

    Rules:
      - commas separate groups (logical AND), order is kept
      - inside a group only the FIRST '|' alternative is looked at;
        the others are never tried
      - from that alternative we take the leading name token, which drops
        "(>= ver)", ":arch" and "[arch list]" tails
      - the token must start the alternative, so substvar placeholders such as
        "${misc:Depends}" yield nothing; tokens containing '$' are dropped
      - a group without any usable token is skipped silently
      - no deduplication: "a, a" yields ["a", "a"]
    """
    deps: List[str] = []
    if not dep_field_val:
        return deps

    for group in dep_field_val.split(','):
        first_alt = group.strip().split('|')[0].strip()
        m = _DEP_NAME_RE.match(first_alt)
        if not m:
            continue
        pkg_name = m.group(0)
        if pkg_name and '$' not in pkg_name:
            deps.append(pkg_name)
    return deps


##############################################################################
# Parsing the Packages stream
##############################################################################

def parse_packages_stream(lines: Iterable[str]) -> List[PackageRecord]:
    """
    Turn an iterable of text lines (a file object, a list, a generator from
    repository_source) into PackageRecord objects in document order.

    A stanza is emitted when a blank line closes it, or at end of input if the
    document does not end with a blank line. Stanzas whose Package field is
    missing or empty are discarded.

    If reading the stream itself fails half way we raise IndexReadError:
    a partial index would silently produce a wrong graph.
    """
    records: List[PackageRecord] = []

    name = ""
    version = ""
    depends: List[str] = []
    in_package = False

    try:
        for raw_line in lines:
            line = raw_line.rstrip('\r\n')

            if line == "":
                # End of stanza
                if in_package and name:
                    records.append(PackageRecord(name, version, depends))
                # a nameless stanza must not leak fields into the next one
                name, version, depends = "", "", []
                in_package = False
                continue

            if line.startswith(" ") or line.startswith("\t"):
                # Continuation line: intentionally not folded
                continue

            if ":" not in line:
                continue

            key, val = line.split(":", 1)
            key = key.strip()
            val = val.strip()

            if key == "Package":
                in_package = True
                name = val
            elif key == "Version":
                version = val
            elif key == "Depends":
                depends = extract_dependency_names(val)
    except (OSError, ValueError, EOFError) as e:
        raise IndexReadError(f"Error reading the Packages index: {e}") from e

    # flush last stanza if the document didn't end with a blank line
    if in_package and name:
        records.append(PackageRecord(name, version, depends))

    return records


def build_package_index(records: Iterable[PackageRecord]) -> PackageIndex:
    """Group records by name, keeping document order inside each name."""
    index: PackageIndex = {}
    for record in records:
        if not record.name:
            continue
        index.setdefault(record.name, []).append(record)
    return index


##############################################################################
# Root package resolution
##############################################################################

def known_versions(index: PackageIndex, name: str) -> List[str]:
    """
    Every version string indexed for `name`, newest first by Debian ordering.

    Only used to make notices readable. Resolution never looks at this order:
    it always works on document order. Versions that python-debian refuses to
    parse (e.g. an empty Version field) are listed last, in document order.
    """
    parsed = []
    unparsed = []
    for record in index.get(name, []):
        try:
            parsed.append((Version(record.version), record.version))
        except ValueError:
            unparsed.append(record.version or "<none>")
    parsed.sort(key=lambda item: item[0], reverse=True)
    return [text for _, text in parsed] + unparsed


def find_package(index: PackageIndex, name: str, version: Optional[str] = None) -> PackageRecord:
    """
    Pick the record that represents the ROOT package of a run.

      - version given and present: first record with exactly that version
      - version given but absent: first record for the name, with a warning
      - no version: first record for the name
      - no record at all: PackageNotFoundError

    "First" means first in document order. It is NOT the newest version.
    Only the root goes through here; every other node of the graph takes the
    first record unconditionally (see dependency_graph).
    """
    candidates = index.get(name, [])
    if not candidates:
        raise PackageNotFoundError(name, version)

    if not version:
        return candidates[0]

    for record in candidates:
        if record.version == version:
            return record

    chosen = candidates[0]
    print(f"Warning: package {name} version {version} not found, using version {chosen.version} "
          f"(available: {', '.join(known_versions(index, name))})")
    return chosen
