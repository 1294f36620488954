from docweave.builders.base import BuilderHooks, StagedBuilder
from docweave.builders.docs import DocsBuilder
from docweave.builders.libraries import LibrariesBuilder
from docweave.builders.navs import NavsBuilder

__all__ = [
    "BuilderHooks",
    "DocsBuilder",
    "LibrariesBuilder",
    "NavsBuilder",
    "StagedBuilder",
]
