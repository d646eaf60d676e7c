"""Supported languages and how each one is run.

Every :class:`Language` member has exactly one :class:`LanguageSpec`
entry in :data:`LANGUAGE_SPECS`.  The table is checked when the module is
imported so that adding a language without wiring it up fails immediately
instead of falling through at run time.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import UnsupportedLanguage


class Language(str, enum.Enum):
    """Languages the editor knows about.  The first member is the default."""

    JAVASCRIPT = "javascript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "cpp"
    C = "c"


class RunnerKind(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class LanguageSpec:
    """Static description of one language.

    Attributes
    ----------
    label: str
        Human readable name.
    extension: str
        Canonical file extension including the leading dot.
    runner: RunnerKind
        Whether code runs in the local sandbox or on the remote service.
    canonical_filename: str
        File name the runtime expects for its entry point.  Java for
        instance requires the public class ``Main`` to live in
        ``Main.java``.
    remote_language: str, optional
        Identifier understood by the remote execution service.
    remote_version: str, optional
        Version pin sent alongside ``remote_language``.
    template: str
        Starter program placed in new files of this language.
    """

    label: str
    extension: str
    runner: RunnerKind
    canonical_filename: str
    template: str
    remote_language: Optional[str] = None
    remote_version: Optional[str] = None


JAVASCRIPT_TEMPLATE = """// Welcome to the Code Editor
console.log("Hello, World!");

function fibonacci(n) {
  if (n <= 1) return n;
  return fibonacci(n - 1) + fibonacci(n - 2);
}

console.log("Fibonacci(10):", fibonacci(10));"""

PYTHON_TEMPLATE = """# Welcome to the Code Editor
print("Hello, World!")

def fibonacci(n):
    if n <= 1:
        return n
    return fibonacci(n - 1) + fibonacci(n - 2)

print(f"Fibonacci(10): {fibonacci(10)}")"""

JAVA_TEMPLATE = """// Welcome to the Code Editor
public class Main {
    public static void main(String[] args) {
        System.out.println("Hello, World!");

        System.out.println("Fibonacci(10): " + fibonacci(10));
    }

    public static int fibonacci(int n) {
        if (n <= 1) return n;
        return fibonacci(n - 1) + fibonacci(n - 2);
    }
}"""

CPP_TEMPLATE = """// Welcome to the Code Editor
#include <iostream>
using namespace std;

int fibonacci(int n) {
    if (n <= 1) return n;
    return fibonacci(n - 1) + fibonacci(n - 2);
}

int main() {
    cout << "Hello, World!" << endl;
    cout << "Fibonacci(10): " << fibonacci(10) << endl;
    return 0;
}"""

C_TEMPLATE = """// Welcome to the Code Editor
#include <stdio.h>

int fibonacci(int n) {
    if (n <= 1) return n;
    return fibonacci(n - 1) + fibonacci(n - 2);
}

int main() {
    printf("Hello, World!\\n");
    printf("Fibonacci(10): %d\\n", fibonacci(10));
    return 0;
}"""


LANGUAGE_SPECS: Dict[Language, LanguageSpec] = {
    Language.JAVASCRIPT: LanguageSpec(
        label="JavaScript",
        extension=".js",
        runner=RunnerKind.LOCAL,
        canonical_filename="main.js",
        template=JAVASCRIPT_TEMPLATE,
    ),
    Language.PYTHON: LanguageSpec(
        label="Python",
        extension=".py",
        runner=RunnerKind.REMOTE,
        canonical_filename="main.py",
        template=PYTHON_TEMPLATE,
        remote_language="python",
        remote_version="3.10.0",
    ),
    Language.JAVA: LanguageSpec(
        label="Java",
        extension=".java",
        runner=RunnerKind.REMOTE,
        canonical_filename="Main.java",
        template=JAVA_TEMPLATE,
        remote_language="java",
        remote_version="15.0.2",
    ),
    Language.CPP: LanguageSpec(
        label="C++",
        extension=".cpp",
        runner=RunnerKind.REMOTE,
        canonical_filename="main.cpp",
        template=CPP_TEMPLATE,
        remote_language="cpp",
        remote_version="10.2.0",
    ),
    Language.C: LanguageSpec(
        label="C",
        extension=".c",
        runner=RunnerKind.REMOTE,
        canonical_filename="main.c",
        template=C_TEMPLATE,
        remote_language="c",
        remote_version="10.2.0",
    ),
}


def _check_complete(specs: Dict[Language, LanguageSpec]) -> None:
    missing = set(Language) - set(specs)
    if missing:
        raise RuntimeError(f"every Language needs a LanguageSpec, missing: {sorted(m.value for m in missing)}")


_check_complete(LANGUAGE_SPECS)

DEFAULT_LANGUAGE = next(iter(Language))

LOCAL_LANGUAGES = frozenset(
    lang for lang, spec in LANGUAGE_SPECS.items() if spec.runner is RunnerKind.LOCAL
)
REMOTE_LANGUAGES = frozenset(
    lang for lang, spec in LANGUAGE_SPECS.items() if spec.runner is RunnerKind.REMOTE
)

_EXTENSION_ALIASES = {
    "py": Language.PYTHON,
    "java": Language.JAVA,
    "cpp": Language.CPP,
    "cc": Language.CPP,
    "cxx": Language.CPP,
    "c": Language.C,
    "js": Language.JAVASCRIPT,
    "mjs": Language.JAVASCRIPT,
}


def parse_language(value: str) -> Language:
    """Return the :class:`Language` named by ``value``.

    Raises :class:`~webide.errors.UnsupportedLanguage` for unknown names.
    """
    try:
        return Language((value or "").strip().lower())
    except ValueError:
        raise UnsupportedLanguage(value)


def spec_for(language: Language) -> LanguageSpec:
    return LANGUAGE_SPECS[language]


def template_for(language: Language) -> str:
    return LANGUAGE_SPECS[language].template


def language_for_filename(filename: str) -> Language:
    """Guess a language from a file name's extension, defaulting to JavaScript."""
    if "." not in filename:
        return DEFAULT_LANGUAGE
    extension = filename.rsplit(".", 1)[1].lower()
    return _EXTENSION_ALIASES.get(extension, DEFAULT_LANGUAGE)
