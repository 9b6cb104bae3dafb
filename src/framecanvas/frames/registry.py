"""
Frame registry for framecanvas.

Frames live in an id-indexed dict. Parent links are ids used for lookup only
and child lists only fix drawing order, so no frame object ever holds another.
"""

from framecanvas.models import CoordinateFrame
from framecanvas.tracer import get_tracer

NESTING_COLORS = (
    "#6366f1",  # indigo, top-level frames
    "#ec4899",  # pink
    "#10b981",  # emerald
    "#f59e0b",  # amber
    "#8b5cf6",  # violet
    "#06b6d4",  # cyan
    "#ef4444",  # red
    "#14b8a6",  # teal
)


class FrameRegistry:
    """Owner of every frame; resolves parent and child lookups by id."""

    def __init__(self, frames=None):
        self._frames = {}
        for frame in frames or ():
            self.add(frame)

    def __len__(self):
        return len(self._frames)

    def __contains__(self, frame_id):
        return frame_id in self._frames

    def __iter__(self):
        return iter(self._frames.values())

    def add(self, frame):
        """
        Register a frame and link it under its parent.

        The parent must already be registered, which keeps the graph a forest.
        Child lists are filled in here as children are added, so an incoming
        frame that already names children is refused.
        """
        if not isinstance(frame, CoordinateFrame):
            frame = CoordinateFrame.model_validate(frame)
        if frame.id in self._frames:
            raise ValueError(f"Duplicate frame id: {frame.id}")
        if frame.child_frame_ids:
            raise ValueError(
                f"Frame {frame.id} lists children {frame.child_frame_ids}; "
                "children are linked through their parent_frame_id"
            )

        if frame.parent_frame_id is not None:
            parent = self._frames.get(frame.parent_frame_id)
            if parent is None:
                raise KeyError(f"Unknown parent frame: {frame.parent_frame_id}")
            if frame.id not in parent.child_frame_ids:
                parent.child_frame_ids.append(frame.id)

        self._frames[frame.id] = frame
        get_tracer().event(f"Registered frame {frame.id}", level="DEBUG",
                           parent=frame.parent_frame_id)
        return frame

    def resolve(self, frame_id):
        """Frame for the id, or None."""
        if frame_id is None:
            return None
        return self._frames.get(frame_id)

    def get(self, frame_id):
        """Frame for the id; raises KeyError if absent."""
        frame = self.resolve(frame_id)
        if frame is None:
            raise KeyError(f"Unknown frame: {frame_id}")
        return frame

    def remove(self, frame_id):
        """
        Delete a frame together with its whole subtree.

        Returns the removed ids, parent before children. Unknown ids remove
        nothing.
        """
        frame = self._frames.get(frame_id)
        if frame is None:
            return []

        removed = []
        stack = [frame_id]
        while stack:
            current_id = stack.pop()
            current = self._frames.pop(current_id, None)
            if current is None:
                continue
            removed.append(current_id)
            stack.extend(reversed(current.child_frame_ids))

        parent = self._frames.get(frame.parent_frame_id)
        if parent is not None and frame_id in parent.child_frame_ids:
            parent.child_frame_ids.remove(frame_id)

        get_tracer().event(f"Removed {len(removed)} frame(s) rooted at {frame_id}")
        return removed

    def parent_of(self, frame):
        return self.resolve(frame.parent_frame_id)

    def children_of(self, frame):
        return [self._frames[cid] for cid in frame.child_frame_ids if cid in self._frames]

    def roots(self):
        """Top-level frames in insertion order."""
        return [f for f in self._frames.values() if self.parent_of(f) is None]

    def ancestors(self, frame):
        """Ancestors of a frame, nearest parent first."""
        chain = []
        seen = {frame.id}
        parent = self.parent_of(frame)
        while parent is not None:
            if parent.id in seen:
                raise ValueError(f"Cycle in frame ancestry at {parent.id}")
            seen.add(parent.id)
            chain.append(parent)
            parent = self.parent_of(parent)
        return chain

    def path_to_root(self, frame):
        """The frame followed by its ancestors."""
        return [frame] + self.ancestors(frame)

    def depth(self, frame):
        return len(self.ancestors(frame))

    def walk(self):
        """Depth-first drawing order: each root, then its children in order."""
        order = []
        stack = list(reversed(self.roots()))
        while stack:
            frame = stack.pop()
            order.append(frame)
            stack.extend(reversed(self.children_of(frame)))
        return order

    def nesting_color(self, frame):
        """Grid colour for the frame's nesting level."""
        return NESTING_COLORS[self.depth(frame) % len(NESTING_COLORS)]
