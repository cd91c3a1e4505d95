"""
Orchestration Package

Coordinates registered analysis agents over a batch of log records:
- Task validation
- Sequential, parallel and conditional pipelines
- Result aggregation
- Task status tracking and rolling performance statistics
"""
