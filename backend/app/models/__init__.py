from app.models.user import User
from app.models.product import Product
from app.models.match import Swipe, Match, Message
from app.models.premium import PremiumPlan, UserSubscription, PremiumUsage, SuperLike, UserBoost
from app.models.auction import Auction, AuctionBid
from app.models.circular_trade import CircularTrade, CircularTradeParticipant
from app.models.gamification import (
    Mission,
    UserMission,
    Achievement,
    UserAchievement,
    TrukoinWallet,
    TrukoinTransaction,
)
from app.models.discount import DiscountCode, DiscountCodeUse
from app.models.settings import FeatureFlag, AdminSetting
from app.models.notification import Notification

__all__ = [
    "User",
    "Product",
    "Swipe",
    "Match",
    "Message",
    "PremiumPlan",
    "UserSubscription",
    "PremiumUsage",
    "SuperLike",
    "UserBoost",
    "Auction",
    "AuctionBid",
    "CircularTrade",
    "CircularTradeParticipant",
    "Mission",
    "UserMission",
    "Achievement",
    "UserAchievement",
    "TrukoinWallet",
    "TrukoinTransaction",
    "DiscountCode",
    "DiscountCodeUse",
    "FeatureFlag",
    "AdminSetting",
    "Notification",
]
