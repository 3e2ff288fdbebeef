"""Command-line interface for duobudget."""

from __future__ import annotations

import asyncio as asyncio
import logging as logging

from duobudget import DuoBudget as DuoBudget
from duobudget import load_config as load_config
from duobudget import load_offline as load_offline
from duobudget.cli.app import main as main
from duobudget.cli.commands import add as add_command
from duobudget.cli.commands import delete as delete_command
from duobudget.cli.commands import list_records as list_command
from duobudget.cli.commands import settings as settings_command
from duobudget.cli.commands import summary as summary_command
from duobudget.cli.commands import watch as watch_command
from duobudget.cli.notify import RichNotifier as RichNotifier
from duobudget.cli.parser import build_parser as build_parser

_run_watch = watch_command.run_watch
_run_add = add_command.run_add
_run_delete = delete_command.run_delete
_run_list = list_command.run_list
_run_summary = summary_command.run_summary
_run_config_show = settings_command.run_config_show
_run_config_set = settings_command.run_config_set
