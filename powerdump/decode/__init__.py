from .snapshot_loader import SnapshotDecoder, load_snapshots

__all__ = ["SnapshotDecoder", "load_snapshots"]
