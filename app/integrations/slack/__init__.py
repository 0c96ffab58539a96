# Slack integration module
from app.integrations.slack.client import SlackClient, SlackApiCallError
from app.integrations.slack.models import SlackMessage, SlackChannelInfo, SlackUser

__all__ = ["SlackClient", "SlackApiCallError", "SlackMessage", "SlackChannelInfo", "SlackUser"]
