"""The complete set of web views behind one object."""

from __future__ import annotations

from zonepanel.records import RecordViews
from zonepanel.tsigkeys import TSIGKeyViews
from zonepanel.users import UserViews
from zonepanel.zones import ZoneViews


class Handler(ZoneViews, RecordViews, TSIGKeyViews, UserViews):
    """All views: health, zones, records, TSIG keys and users, sharing one state."""