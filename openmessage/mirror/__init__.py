from __future__ import annotations

from .base import MirrorWriter, NullMirror
from .fanout import MirrorFanout
from .supabase import SupabaseWriter, build_writer

__all__ = ["MirrorFanout", "MirrorWriter", "NullMirror", "SupabaseWriter", "build_writer"]
