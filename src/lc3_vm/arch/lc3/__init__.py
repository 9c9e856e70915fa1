"""
LC-3 Architecture Package
"""
from .cpu import Lc3Cpu
from .state import Lc3CpuState
