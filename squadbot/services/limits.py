MAX_CHALLENGES_PER_USER = 10
MAX_PARTICIPANTS_PER_CHALLENGE = 50
MAX_TASKS_PER_CHALLENGE = 50
MAX_ID_ATTEMPTS = 10
