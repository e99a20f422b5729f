"""Global constants for the secret compliments application."""

# Collection names
PROFILES_COLLECTION = "profiles"
GROUPS_COLLECTION = "groups"
MEMBERS_COLLECTION = "members"
COMPLIMENTS_COLLECTION = "compliments"

# Fields of 'profiles' documents
PROFILE_DISPLAY_NAME = "displayName"

# Fields of 'groups' documents
GROUP_NAME = "name"
GROUP_CREATOR_ID = "creatorId"
GROUP_CREATED_AT = "createdAt"

# Fields of 'groups/{id}/members' documents
MEMBER_USER_NAME = "userName"
MEMBER_JOINED_AT = "joinedAt"

# Fields of 'compliments' documents
COMPLIMENT_SENDER_ID = "senderId"
COMPLIMENT_RECEIVER_ID = "receiverId"
COMPLIMENT_GROUP_ID = "groupId"
COMPLIMENT_MESSAGE = "message"
COMPLIMENT_TIMESTAMP = "timestamp"

# Notice types
NOTICE_SUCCESS = "success"
NOTICE_ERROR = "error"

# Flask session key holding the resumable user id
SESSION_USER_ID = "uid"

GROUP_DELETED_MESSAGE = "The group you were in may have been deleted."
UNKNOWN_MEMBER_NAME = "a member"
