"""
The Supervisor package.
Manages the lifecycle of unit processes.

This package contains the ProcessSupervisor class and its helper modules,
which together handle launching, verifying and terminating unit processes
and persisting their liveness records.
"""
from .supervisor import Outcome, ProcessSupervisor, SupervisorResult, UnitState

__all__ = ['Outcome', 'ProcessSupervisor', 'SupervisorResult', 'UnitState']
