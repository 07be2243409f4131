"""FlowZone productivity backend: tasks, calendar, chat assistant and focus timer."""
