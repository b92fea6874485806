"""Shared meeting board -- meeting lifecycle and delete-vote consensus.

Provides the SQLAlchemy models, MeetingRepository, the lifecycle service
(create/update with the future-only rule), the delete-vote consensus engine
(quorum-based deletion) and the listing projection.
"""
