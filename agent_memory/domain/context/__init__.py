# This module handles agent memory

# +---------------------+
# |   Session scope     |   (Short-term, expires via store TTL)
# |---------------------|
# | Session attributes  |
# | Conversation id     |
# +---------------------+

# +---------------------+
# |  Long-term scopes   |   (Persist until overwritten or deleted)
# |---------------------|
# | Preferences         |
# | Category mappings   |
# | Conversation (50)   |
# | Last analysis       |
# +---------------------+

#    \    /
#     \  /
#      \/
# +------------------------------+
# |         AgentSession         |   (Snapshot taken at session start)
# |------------------------------|
# | Canonical memory entries     |
# | Memory context for writes    |
# +------------------------------+
#         |
#         v
#   [tool call] -> record_tool_execution -> LearningEngine
