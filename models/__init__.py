from .user import User
from .workspace import Workspace, AccountType
from .collaborators import Collaborator
from .subscription import Subscription
