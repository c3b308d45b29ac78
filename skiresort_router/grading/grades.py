"""Grades and link type tags shared by links and grading strategies."""

from enum import Enum


class Grade(str, Enum):
    """Link quality label, A best. E marks a link for removal."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"

    @property
    def is_retained(self) -> bool:
        return self is not Grade.E


class LinkType(str, Enum):
    """Tag selecting the grading rule table of a link."""

    LIFT_LINK = "LiftLink"
    SLOPE_LIFT = "SlopeLift"
    SLOPE_LINK = "Slope2Slope"
    BUS_LINK = "BusLink"
