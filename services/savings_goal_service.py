from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from database import crud
from database.models import GoalStatus, SavingsGoalModel, UserModel
from models.savings_goal import SavingsGoalCreate, SavingsGoalUpdate
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class SavingsGoalService:
    def __init__(self, db: Session):
        self.db = db

    def _sync_status(self, goal: SavingsGoalModel) -> None:
        # Un objectif atteint passe automatiquement à COMPLETED
        if goal.current_amount >= goal.target_amount and goal.status in (GoalStatus.IN_PROGRESS, GoalStatus.PAUSED):
            goal.status = GoalStatus.COMPLETED

    def create_goal(self, user: UserModel, request: SavingsGoalCreate) -> SavingsGoalModel:
        values = request.model_dump()
        values['name'] = values['name'].strip()
        values['target_amount'] = round(values['target_amount'], 2)
        values['current_amount'] = round(values['current_amount'], 2)
        goal = SavingsGoalModel(user_id=user.id, status=GoalStatus.IN_PROGRESS, **values)
        self._sync_status(goal)
        goal = crud.save_savings_goal(self.db, goal)
        logger.info(f"Objectif d'épargne créé pour {user.username}: {goal.name} ({goal.target_amount})")
        return goal

    def list_goals(self, user: UserModel, status: Optional[GoalStatus] = None) -> List[SavingsGoalModel]:
        return crud.get_savings_goals(self.db, user.id, status)

    def get_goal(self, user: UserModel, goal_id: int) -> SavingsGoalModel:
        goal = crud.get_savings_goal_for_user(self.db, goal_id, user.id)
        if not goal:
            raise NotFoundError("Objectif d'épargne non trouvé")
        return goal

    def update_goal(self, user: UserModel, goal_id: int, request: SavingsGoalUpdate) -> SavingsGoalModel:
        goal = self.get_goal(user, goal_id)
        values = request.model_dump(exclude_unset=True)
        for field, value in values.items():
            # seules la description et la date cible peuvent être effacées
            if value is None and field not in ('description', 'target_date'):
                continue
            setattr(goal, field, value)
        self._sync_status(goal)
        goal = crud.save_savings_goal(self.db, goal)
        logger.info(f"Objectif d'épargne {goal_id} mis à jour pour {user.username}")
        return goal

    def contribute(self, user: UserModel, goal_id: int, amount: float) -> SavingsGoalModel:
        """
        Ajoute un versement à un objectif ; l'objectif est marqué COMPLETED dès que la cible est atteinte
        """
        if amount <= 0:
            raise ValueError("Le montant du versement doit être positif")
        goal = self.get_goal(user, goal_id)
        if goal.status in (GoalStatus.COMPLETED, GoalStatus.CANCELLED):
            raise ValueError(f"Impossible d'alimenter un objectif au statut {goal.status.value}")
        goal.current_amount = round((goal.current_amount or 0.0) + amount, 2)
        self._sync_status(goal)
        goal = crud.save_savings_goal(self.db, goal)
        logger.info(f"Versement de {amount} sur l'objectif {goal_id} ({user.username}), progression {goal.progress_percentage}%")
        return goal

    def delete_goal(self, user: UserModel, goal_id: int) -> None:
        goal = self.get_goal(user, goal_id)
        crud.delete_savings_goal(self.db, goal)
        logger.info(f"Objectif d'épargne {goal_id} supprimé pour {user.username}")
