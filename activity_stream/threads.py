"""
Comment thread structure.

Comments are activity items of type ``activity_comment`` with
``item_id`` = root activity and ``secondary_item_id`` = parent (the root
itself for top-level comments). The thread order is kept as nested-set
bounds (``mptt_left``/``mptt_right``) recomputed by ``rebuild_comment_tree``.
Traversals use explicit stacks, so thread depth is not limited by the
interpreter's recursion limit.
"""
from collections import defaultdict
from typing import Dict, List, Tuple

from .component import COMMENT_TYPE
from .errors import StoreFailure
from .logging_config import activity_logger, timed
from .schemas.activity import ActivityItem, CommentNode, ThreadedComment
from .store import ActivityFilter, ActivityStore


def _thread(store: ActivityStore, root_id: int) -> List[ActivityItem]:
    return store.find(ActivityFilter(type=COMMENT_TYPE, item_id=root_id, show_hidden=True, sort="ASC"))


def get_child_comments(store: ActivityStore, comment_id: int) -> List[ActivityItem]:
    return store.find(ActivityFilter(type=COMMENT_TYPE, secondary_item_id=comment_id, show_hidden=True, sort="ASC"))


def descendants_post_order(store: ActivityStore, root_id: int, node_id: int) -> List[int]:
    """
    Comment ids below ``node_id`` in the thread of ``root_id``, every comment
    listed after all of its own replies. ``node_id`` may be the root itself.
    """
    order = []
    seen = {node_id}
    stack = [(node_id, False)]

    while stack:
        current, expanded = stack.pop()
        if expanded:
            if current != node_id:
                order.append(current)
            continue
        stack.append((current, True))
        for child in get_child_comments(store, current):
            if child.item_id == root_id and child.id not in seen:
                seen.add(child.id)
                stack.append((child.id, False))
    return order


@timed(activity_logger)
def rebuild_comment_tree(store: ActivityStore, root_id: int, commit: bool = True) -> Dict[int, Tuple[int, int]]:
    """
    Renumber the nested-set bounds of ``root_id`` and all of its comments.

    Siblings are numbered oldest first. Comments whose parent chain never
    reaches the root get (0, 0) and drop out of the thread.

    Returns the bounds written, keyed by activity id.
    """
    comments = _thread(store, root_id)
    children = defaultdict(list)
    for comment in comments:
        children[comment.secondary_item_id].append(comment.id)

    bounds: Dict[int, Tuple[int, int]] = {}
    left = {root_id: 1}
    counter = 2
    seen = {root_id}
    stack = [(root_id, iter(children.get(root_id, ())))]

    while stack:
        node_id, pending = stack[-1]
        child_id = next(pending, None)
        if child_id is None:
            stack.pop()
            bounds[node_id] = (left[node_id], counter)
            counter += 1
        elif child_id not in seen:
            seen.add(child_id)
            left[child_id] = counter
            counter += 1
            stack.append((child_id, iter(children.get(child_id, ()))))

    orphans = [comment.id for comment in comments if comment.id not in seen]
    if orphans:
        activity_logger.warning("Orphaned comments left out of thread", root_id=root_id, orphans=orphans)
        for orphan_id in orphans:
            bounds[orphan_id] = (0, 0)

    try:
        store.set_tree_bounds(bounds)
        if commit:
            store.commit()
    except StoreFailure:
        if not commit:
            raise
        store.rollback()
        return {}
    return bounds


def get_comments(store: ActivityStore, root_id: int) -> List[CommentNode]:
    """Comments of ``root_id``, parents before children, with depth (1 = top level)."""
    threaded = sorted((c for c in _thread(store, root_id) if c.mptt_left > 0), key=lambda c: c.mptt_left)

    nodes = []
    open_rights: List[int] = []
    for comment in threaded:
        while open_rights and open_rights[-1] < comment.mptt_left:
            open_rights.pop()
        nodes.append(CommentNode(item=comment, depth=len(open_rights) + 1))
        open_rights.append(comment.mptt_right)
    return nodes


def get_comment_tree(store: ActivityStore, root_id: int) -> List[ThreadedComment]:
    top_level: List[ThreadedComment] = []
    stack: List[Tuple[int, ThreadedComment]] = []

    for node in get_comments(store, root_id):
        comment = ThreadedComment(item=node.item)
        while stack and stack[-1][0] < node.item.mptt_left:
            stack.pop()
        if stack:
            stack[-1][1].children.append(comment)
        else:
            top_level.append(comment)
        stack.append((node.item.mptt_right, comment))
    return top_level
