"""Event type constants published on the EventBus."""


class EventTypes:
    """Event type strings"""

    # reputation
    REPUTATION_CHANGED = "reputation_changed"
    STANDING_CHANGED = "standing_changed"
    CONSEQUENCE_EXECUTED = "consequence_executed"
    REPUTATION_DECAYED = "reputation_decayed"

    # outbound notification channel
    NOTIFICATION_SENT = "notification_sent"

    # === Guild lifecycle ===
    GUILD_CREATED = "guild_created"
    GUILD_DISBANDED = "guild_disbanded"
    GUILD_LEVEL_UP = "guild_level_up"

    # === Guild membership ===
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_PROCESSED = "application_processed"
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"
    MEMBER_KICKED = "member_kicked"
    ROLE_CHANGED = "role_changed"
    LEADERSHIP_TRANSFERRED = "leadership_transferred"

    # === Treasury / perks / diplomacy ===
    RESOURCES_DEPOSITED = "resources_deposited"
    RESOURCES_WITHDRAWN = "resources_withdrawn"
    PERK_ACTIVATED = "perk_activated"
    RELATION_CHANGED = "relation_changed"

    # scheduler
    TICK_PROCESSED = "tick_processed"
