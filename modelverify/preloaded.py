"""Classes every model may use without declaring them.

Preloaded classes are described only by their contracts. They are merged
into each loaded ClassModelTable, called through contract abstraction and
never verified themselves.
"""

from __future__ import annotations

from modelverify.class_model import ClassModel
from modelverify.parser import parse


PRELOADED_SOURCE = """
class Math
{
    public static double Sqrt(double d)
        require d >= 0
        ensure Result >= 0
        ensure Result * Result == d;
}
"""


def preloaded_classes() -> list[ClassModel]:
    classes = parse(PRELOADED_SOURCE, "<preloaded>")
    for cls in classes:
        cls.is_preloaded = True
        for method in cls.methods.values():
            method.is_preloaded = True
    return classes
