from .perfdata import PerfRecord, PerfValue, render_perfdata
from .thresholds import ThresholdSpec, Verdict

__all__ = ["PerfRecord",
           "PerfValue",
           "render_perfdata",
           "ThresholdSpec",
           "Verdict"]
