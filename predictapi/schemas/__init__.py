from .auth import BaseResponse, Error, TokenData
from .user import User
from .points import PointsBalanceResponse, PointsLedgerResponse
from .event import BetRequest, BetResponse, EventCreate, EventResponse
from .settlement import SettlementResult
