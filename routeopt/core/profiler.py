"""
Stage timing for the search engines.

Each engine owns a PipelineProfiler and hands it to the components it drives,
so timings never outlive the run that produced them. Only running aggregates
are kept per stage, never one entry per call.
"""

import time
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class StageTiming:
    """Running aggregate for one named stage."""
    count: int = 0
    total_seconds: float = 0.0
    max_seconds: float = 0.0
    min_seconds: float = float('inf')

    def add(self, duration: float):
        self.count += 1
        self.total_seconds += duration
        self.max_seconds = max(self.max_seconds, duration)
        self.min_seconds = min(self.min_seconds, duration)


class PipelineProfiler:
    """Aggregates wall-clock time of named stages (split.decode, alns.iteration, ...)."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.stages: Dict[str, StageTiming] = {}

    def reset(self):
        self.stages = {}

    def profile(self, stage: str) -> '_StageTimer':
        """Context manager timing the enclosed block as one call of stage."""
        return _StageTimer(self, stage)

    def record(self, stage: str, duration: float):
        if not self.enabled:
            return
        timing = self.stages.get(stage)
        if timing is None:
            timing = self.stages[stage] = StageTiming()
        timing.add(duration)

    def get_summary(self) -> List[Dict]:
        """Per-stage totals, slowest stage first."""
        summary = [
            {
                'stage': stage,
                'count': t.count,
                'total_seconds': t.total_seconds,
                'avg_seconds': t.total_seconds / t.count,
                'max_seconds': t.max_seconds,
                'min_seconds': t.min_seconds,
            }
            for stage, t in self.stages.items() if t.count
        ]
        summary.sort(key=lambda item: item['total_seconds'], reverse=True)
        return summary

    def format_summary(self, top_n: Optional[int] = None) -> str:
        rows = self.get_summary()[:top_n]
        lines = ["Stage timings:"]
        for row in rows:
            lines.append(f"  {row['stage']:<24} n={row['count']:<6} "
                         f"sum={row['total_seconds']:.3f}s mean={row['avg_seconds'] * 1000:.2f}ms "
                         f"peak={row['max_seconds'] * 1000:.2f}ms")
        return "\n".join(lines)


class _StageTimer:
    def __init__(self, profiler: PipelineProfiler, stage: str):
        self.profiler = profiler
        self.stage = stage
        self.start = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.profiler.record(self.stage, time.perf_counter() - self.start)
        return False
