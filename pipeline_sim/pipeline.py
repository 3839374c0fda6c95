"""
Four-Stage Instruction Pipeline Simulator

Steps instructions through Fetch (IF), Decode (ID), Execute (EX) and
Write Back (WB), one stage per cycle. There is no forwarding: results are only
available after WB. So an instruction that depends on the one right before it
must wait one cycle in decode, and a bubble (no-op) fills the gap.

The in-flight pipeline is a list ordered oldest (most advanced) first. Every
cycle builds a fresh list from the previous one, walking from the most advanced
instruction to the least advanced. When a stall is injected the walk stops, so
nothing upstream of the stalled instruction moves that cycle. At most one stall
is injected per cycle.

Usage:
    sim = PipelineSimulator()
    sim.insert_instruction(Instruction("a"))
    sim.insert_instruction(Instruction("b", data_dependent=True))
    result = sim.run()
    result.total_cycles, result.stall_count
"""

import json
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Deque, Dict, List, Tuple

logger = logging.getLogger(__name__)

# A four-stage pipeline holds at most four instructions at a time
PIPELINE_DEPTH = 4

NOOP_INSTRUCTION = "-"


class Stage(Enum):
    """Pipeline state of an instruction."""
    INVALID = "--"       # Admitted, not yet fetched
    FETCH = "IF"
    DECODE = "ID"        # Dependency check happens here
    EXECUTE = "EX"       # Data reads happen here
    WRITE_BACK = "WB"    # Result becomes available after this stage
    COMPLETED = "OK"


NEXT_STAGE = {
    Stage.INVALID: Stage.FETCH,
    Stage.FETCH: Stage.DECODE,
    Stage.DECODE: Stage.EXECUTE,
    Stage.EXECUTE: Stage.WRITE_BACK,
    Stage.WRITE_BACK: Stage.COMPLETED,
}

# Stages shown in the per-cycle output
ACTIVE_STAGES = (Stage.FETCH, Stage.DECODE, Stage.EXECUTE, Stage.WRITE_BACK)

# Transitions out of these stages count as forward progress
WORKING_STAGES = (Stage.INVALID, Stage.FETCH, Stage.DECODE, Stage.EXECUTE)


@dataclass(frozen=True)
class Instruction:
    """An instruction in flight. A bubble carries the NOOP_INSTRUCTION marker."""
    ident: str
    stage: Stage = Stage.INVALID
    data_dependent: bool = False

    @property
    def is_noop(self) -> bool:
        return self.ident == NOOP_INSTRUCTION

    @classmethod
    def noop(cls, stage: Stage = Stage.INVALID) -> "Instruction":
        return cls(NOOP_INSTRUCTION, stage)


@dataclass
class CycleSnapshot:
    """Active instructions after one cycle, oldest first."""
    cycle: int
    entries: List[Tuple[str, Stage]] = field(default_factory=list)
    stalled: bool = False

    def by_stage(self) -> Dict[Stage, List[str]]:
        stages: Dict[Stage, List[str]] = {s: [] for s in ACTIVE_STAGES}
        for ident, stage in self.entries:
            stages[stage].append(ident)
        return stages

    def render(self) -> str:
        return " ".join(ident for ident, _ in self.entries)

    def to_dict(self) -> dict:
        return {
            "cycle": self.cycle,
            "stalled": self.stalled,
            "stages": {s.value: ids for s, ids in self.by_stage().items()},
        }


@dataclass
class SimulationResult:
    """
    Outcome of running the pipeline until it drains.

    total_cycles is the last cycle that did real work. The simulator's own
    cycle counter ends one higher, since the call that reports no more work
    only retires the last write-back.
    """
    total_cycles: int
    stall_count: int
    completed_count: int
    timeline: List[CycleSnapshot] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_cycles": self.total_cycles,
            "stall_count": self.stall_count,
            "completed_count": self.completed_count,
            "timeline": [snap.to_dict() for snap in self.timeline],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class PipelineSimulator:
    """
    In-order pipeline stepper.

    Owns the pending queue and the in-flight list. Instructions move from one
    to the other and are dropped once they retire.

    Admission is allowed while the in-flight count is <= max_depth, so the
    pipeline briefly holds max_depth + 1 entries. Cycle counts depend on this.
    An entry still waiting to be fetched also blocks admission, so at most one
    instruction enters IF per cycle.
    """

    def __init__(self, max_depth: int = PIPELINE_DEPTH):
        self.cycle = 0
        self.stall_count = 0
        self.completed_count = 0
        self.max_depth = max_depth
        self._queue: Deque[Instruction] = deque()
        self._in_flight: List[Instruction] = []
        self._stalled_last_cycle = False

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> List[Instruction]:
        return list(self._in_flight)

    def _has_room(self, pipeline: List[Instruction]) -> bool:
        if len(pipeline) > self.max_depth:
            return False
        # a stall leaves the newest entry unfetched
        return not pipeline or pipeline[-1].stage is not Stage.INVALID

    def insert_instruction(self, instruction: Instruction) -> int:
        """Queue an instruction for admission. Returns the queue length."""
        self._queue.append(instruction)
        return len(self._queue)

    def process_next_cycle(self) -> bool:
        """
        Advance the pipeline by one cycle.

        Returns True while a real (non-bubble) instruction made progress this
        cycle. False means the pipeline has drained.
        """
        self.cycle += 1
        more_work = False

        pipeline = list(self._in_flight)
        if self._has_room(pipeline):
            if self._queue:
                pipeline.append(self._queue.popleft())
                logger.debug("cycle %d: admitted %s", self.cycle, pipeline[-1].ident)
                more_work = True
            else:
                # keep flushing the pipeline once the input is exhausted
                pipeline.append(Instruction.noop())

        advanced: List[Instruction] = []
        stalled = False
        for instr in pipeline:
            if stalled or instr.stage is Stage.COMPLETED:
                advanced.append(instr)
                continue

            if instr.stage is Stage.DECODE and instr.data_dependent:
                # hold in decode, bubble takes the execute slot ahead of it
                advanced.append(Instruction.noop(Stage.EXECUTE))
                advanced.append(replace(instr, data_dependent=False))
                self.stall_count += 1
                stalled = True
                logger.debug("cycle %d: stall, %s waits in decode", self.cycle, instr.ident)
            else:
                next_stage = NEXT_STAGE[instr.stage]
                advanced.append(replace(instr, stage=next_stage))
                if next_stage is Stage.COMPLETED and not instr.is_noop:
                    self.completed_count += 1
                    logger.debug("cycle %d: retired %s", self.cycle, instr.ident)

            if instr.stage in WORKING_STAGES and not instr.is_noop:
                more_work = True

        if advanced and advanced[0].stage is Stage.COMPLETED:
            advanced.pop(0)

        self._in_flight = advanced
        self._stalled_last_cycle = stalled
        return more_work

    def snapshot(self) -> CycleSnapshot:
        """Instructions currently in IF/ID/EX/WB, oldest first."""
        entries = [(instr.ident, instr.stage) for instr in self._in_flight
                   if instr.stage in ACTIVE_STAGES]
        return CycleSnapshot(cycle=self.cycle, entries=entries, stalled=self._stalled_last_cycle)

    def render_cycle(self) -> str:
        """One display line: active instruction ids in admission order."""
        return self.snapshot().render()

    def run(self) -> SimulationResult:
        """
        Drive process_next_cycle() until the pipeline drains.

        total_cycles is the last cycle that did real work. The final call that
        reports no work only retires the last write-back and is not counted.
        """
        timeline = []
        while self.process_next_cycle():
            timeline.append(self.snapshot())

        total = timeline[-1].cycle if timeline else 0
        return SimulationResult(
            total_cycles=total,
            stall_count=self.stall_count,
            completed_count=self.completed_count,
            timeline=timeline,
        )
