from .interaction_controller import HitTarget, InteractionController
from .scheduler import QtScheduler, Scheduler

__all__ = ["HitTarget", "InteractionController", "QtScheduler", "Scheduler"]
