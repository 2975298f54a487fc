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

MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 100
MAX_PASSCODE_LENGTH = 64
MAX_GOAL_TITLE_LENGTH = 120
MAX_CATEGORY_LABEL_LENGTH = 40
MAX_CHAT_MESSAGE_LENGTH = 2000
MAX_CHAT_HISTORY = 50
MAX_SPEECH_TEXT_LENGTH = 1000

DEFAULT_CURRENCY = "USD"
SUPPORTED_CURRENCIES = ["USD", "EUR", "GBP", "LRD", "NGN"]
DEFAULT_AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={email}"

MASTER_ACCOUNT_EMAIL = "admin@dm-smart.com"
MASTER_ACCOUNT_NAME = "Master User"

DEVELOPER_NAME = "D & M Smart Services"
DEVELOPER_PHONES = ["+231 772014558", "+231 778613786"]
DEVELOPER_EMAIL = "adavidlsirleaf2005@gmail.com"

CHAT_LOG_RETENTION_DAYS = 90
