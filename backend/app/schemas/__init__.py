from app.schemas.user import User, UserCreate, UserLogin, Token
from app.schemas.product import Product, ProductCreate, ProductUpdate
from app.schemas.match import Swipe, SwipeCreate, SwipeResult, Match, MatchStatusUpdate, Message, MessageCreate
from app.schemas.premium import Plan, PlanCreate, PlanUpdate, Subscription, PremiumStatus
from app.schemas.auction import Auction, AuctionCreate, Bid, BidCreate
from app.schemas.circular_trade import CircularTrade, CircularTradeCreate, CircularTradeJoin
from app.schemas.gamification import Mission, UserMission, Achievement, Wallet
from app.schemas.discount import DiscountCode, DiscountCodeCreate, DiscountCodeUpdate
from app.schemas.notification import Notification

__all__ = [
    "User", "UserCreate", "UserLogin", "Token",
    "Product", "ProductCreate", "ProductUpdate",
    "Swipe", "SwipeCreate", "SwipeResult", "Match", "MatchStatusUpdate", "Message", "MessageCreate",
    "Plan", "PlanCreate", "PlanUpdate", "Subscription", "PremiumStatus",
    "Auction", "AuctionCreate", "Bid", "BidCreate",
    "CircularTrade", "CircularTradeCreate", "CircularTradeJoin",
    "Mission", "UserMission", "Achievement", "Wallet",
    "DiscountCode", "DiscountCodeCreate", "DiscountCodeUpdate",
    "Notification",
]
