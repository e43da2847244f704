"""
Module: planner_kernel.selectors.base
Responsibility: Common base for the read side.  Selectors answer questions
    about versions, tabs, metrics and admin settings from a caller-owned
    Session and never write.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
"""

from sqlalchemy.orm import Session


class BaseSelector:
    """Holds the caller's session; the caller owns commit and close."""

    def __init__(self, session: Session):
        self.session = session
