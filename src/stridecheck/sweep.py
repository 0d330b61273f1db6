"""
Transfer spec sweep.

Enumerates element type x vector width x stride in a fixed order, skipping
whole element types the device cannot handle (64-bit integers, half,
double). Each iteration starts a fresh generator, so a sweep object can be
walked any number of times.
"""

from typing import Callable, Iterator, List, Optional, Sequence, Union

from .schema import (
    ALL_ELEMENT_TYPES,
    DEFAULT_STRIDES,
    VECTOR_WIDTHS,
    CapabilitySnapshot,
    ElementType,
    SweepConfig,
    TransferSpec,
)


Predicate = Callable[[ElementType], bool]


class TransferSweep:
    """
    Lazy, restartable sequence of TransferSpec values.

    Args:
        capabilities: A CapabilitySnapshot, or a predicate taking an
                      ElementType and returning whether it is supported
        element_types: Types to visit, in order
        vector_widths: Widths to visit for each type
        strides: Strides to visit for each width
    """

    def __init__(
        self,
        capabilities: Union[CapabilitySnapshot, Predicate],
        element_types: Sequence[ElementType] = ALL_ELEMENT_TYPES,
        vector_widths: Sequence[int] = VECTOR_WIDTHS,
        strides: Sequence[int] = DEFAULT_STRIDES,
    ):
        if isinstance(capabilities, CapabilitySnapshot):
            self.predicate: Predicate = capabilities.supports
        else:
            self.predicate = capabilities
        self.element_types = tuple(element_types)
        self.vector_widths = tuple(vector_widths)
        self.strides = tuple(strides)

    def supported_element_types(self) -> List[ElementType]:
        return [t for t in self.element_types if self.predicate(t)]

    def __iter__(self) -> Iterator[TransferSpec]:
        for element_type in self.element_types:
            if not self.predicate(element_type):
                continue
            for width in self.vector_widths:
                for stride in self.strides:
                    yield TransferSpec(element_type, width, stride)

    def __len__(self) -> int:
        return len(self.supported_element_types()) * len(self.vector_widths) * len(self.strides)

    def __repr__(self) -> str:
        types = ",".join(t.value for t in self.supported_element_types())
        return f"TransferSweep(types=[{types}], widths={self.vector_widths}, strides={self.strides})"


def sweep(
    capabilities: Union[CapabilitySnapshot, Predicate],
    config: Optional[SweepConfig] = None,
) -> TransferSweep:
    """Build the sweep for a device using the types, widths and strides in config."""
    config = config or SweepConfig()
    return TransferSweep(
        capabilities,
        element_types=config.element_types,
        vector_widths=config.vector_widths,
        strides=config.strides,
    )
