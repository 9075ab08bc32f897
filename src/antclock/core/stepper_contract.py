from abc import ABC, abstractmethod
import math
import numbers


class StepperContract(ABC):
    """
    Abstract base class for coordinate-time steppers.

    A stepper maps (state, dt) to a new state without touching its input.
    The adaptive driver only depends on this call signature, so any object
    satisfying it (or a plain function with the same signature) can drive a run.

    Non-positive or non-finite dt is a caller error and raises ValueError.
    """

    name = "abstract"

    @abstractmethod
    def step(self, state, dt: float):
        """
        Advance state by one coordinate-time increment dt.

        Returns: a new TwoManifoldState with t and tau advanced by dt.
        """
        pass

    def __call__(self, state, dt: float):
        self.check_dt(dt)
        return self.step(state, dt)

    @staticmethod
    def check_dt(dt: float):
        """
        Checks dt before a step is attempted.

        Raises ValueError if dt is not a positive finite number.
        """
        if isinstance(dt, bool) or not isinstance(dt, numbers.Real) or not math.isfinite(dt) or dt <= 0:
            raise ValueError(f"Step size dt must be positive and finite, got {dt!r}")
