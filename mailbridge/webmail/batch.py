"""Group message references by mailbox for the per-mailbox bulk endpoints."""

from collections.abc import Iterable

from mailbridge.webmail.types import MessageRef

MailboxBatch = dict[str, list[int]]


def group_by_mailbox(refs: Iterable[MessageRef]) -> MailboxBatch:
    """Partition refs by mailbox.

    Mailboxes appear in order of first appearance; uids keep input order.
    """
    boxes: MailboxBatch = {}
    for ref in refs:
        boxes.setdefault(ref.mailbox, []).append(ref.uid)
    return boxes


def join_uids(uids: Iterable[int]) -> str:
    """Render uids the way the bulk-action form expects them: ``1-5-9``."""
    return "-".join(str(uid) for uid in uids)
