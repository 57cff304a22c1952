"""Abstract aggregate feed interface (port) for materialized metric tables."""

from livesync.application.interfaces.change_feed_transport import ChangeFeedTransport


class AggregateFeed(ChangeFeedTransport):
    """Port for a change feed scoped to a single metric table keyed by entity id.

    Same shape as ``ChangeFeedTransport``; kept distinct so a deployment can
    route metric tables through a different channel than entity rows.
    """
