from .channel import ChannelAggregator, ChannelStat, DeviceSummary, INVALID_SCALE, aggregate_channels
from .layout import LayoutConstants, RecordLayout
from .pmic import DeviceConfig, resolve_main_index
from .snapshot import NumericStat, Sample, Snapshot
from .timemath import Instant, TimeMode, subtract

__all__ = ["ChannelAggregator",
           "ChannelStat",
           "DeviceSummary",
           "INVALID_SCALE",
           "aggregate_channels",
           "LayoutConstants",
           "RecordLayout",
           "DeviceConfig",
           "resolve_main_index",
           "NumericStat",
           "Sample",
           "Snapshot",
           "Instant",
           "TimeMode",
           "subtract"]
