# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Exceptions raised by the planner rules."""


class PlannerError(Exception):
    pass


class GoalNotFoundError(PlannerError):
    def __init__(self, goal_id: str):
        super().__init__(f"Goal {goal_id} not found")
        self.goal_id = goal_id


class GoalAlreadyCompletedError(PlannerError):
    def __init__(self, goal_id: str):
        super().__init__(f"Goal {goal_id} is already completed")
        self.goal_id = goal_id


class UnknownAlertActionError(PlannerError):
    def __init__(self, action: str):
        super().__init__(f"Unknown alert action: {action}")
        self.action = action
