"""Bounded enumeration of call sequences.

For each depth from 0 to ``max_depth``, every sequence of that many public
methods (repetition allowed) is generated depth-first in method-table order
and handed to an evaluation callback. Exploration stops at the first
sequence whose result is not a success, or once the wall-clock budget is
spent, which yields a Timeout. Both conditions are checked before every
depth level and before every sequence; a running solver call is never
interrupted.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from modelverify.class_model import Method
from modelverify.result import VerificationResult


SequenceEvaluator = Callable[[tuple[Method, ...]], VerificationResult]


class CallSequenceExplorer:
    def __init__(
        self,
        class_name: str,
        methods: list[Method],
        max_depth: int,
        max_duration: float,
        logger: logging.Logger,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.class_name = class_name
        self.methods = methods
        self.max_depth = max_depth
        self.max_duration = max_duration
        self.logger = logger
        self.clock = clock
        self.result = VerificationResult.success(class_name)
        self.sequences_explored = 0
        self._start = 0.0

    def explore(self, evaluate: SequenceEvaluator) -> VerificationResult:
        self._start = self.clock()
        self.result = VerificationResult.success(self.class_name)
        for depth in range(self.max_depth + 1):
            if self._should_stop():
                break
            self.logger.info("Exploring call sequences of length %d", depth)
            if self._explore(depth, [], evaluate):
                break
        return self.result

    def _explore(self, remaining: int, prefix: list[Method], evaluate: SequenceEvaluator) -> bool:
        """Return True once exploration must stop."""
        if self._should_stop():
            return True
        if remaining == 0:
            self.sequences_explored += 1
            self.result = evaluate(tuple(prefix))
            return self._should_stop()
        for method in self.methods:
            prefix.append(method)
            stop = self._explore(remaining - 1, prefix, evaluate)
            prefix.pop()
            if stop:
                return True
        return False

    def _should_stop(self) -> bool:
        if self.result.is_error:
            return True
        if self.clock() - self._start >= self.max_duration:
            self.logger.info("Time budget of %ss exhausted", self.max_duration)
            self.result = VerificationResult.timeout(self.class_name)
            return True
        return False

    def elapsed(self) -> float:
        return self.clock() - self._start
