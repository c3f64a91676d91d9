from .user import User
from .sustainability_action import SustainabilityAction
from .action_log import ActionLog, VerificationStatus
from .point_transaction import PointTransaction, TransactionType
from .level_reward import LevelReward, RewardType
from .reward_claim import UserLevelReward, ClaimStatus
from .notification import Notification
from .admin_activity import AdminActivity

__all__ = [
    "User",
    "SustainabilityAction",
    "ActionLog",
    "VerificationStatus",
    "PointTransaction",
    "TransactionType",
    "LevelReward",
    "RewardType",
    "UserLevelReward",
    "ClaimStatus",
    "Notification",
    "AdminActivity",
]
