"""
Command dispatcher for console input.

Each input line is parsed into a leading command token and routed to a
handler. Send-type handlers check for a live session first, then validate
their arguments, and only then touch the transport. A line without a
command prefix is sent as a global chat message.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer
from loguru import logger

from .connection_state import ConnectionState
from .reconnection import ReconnectionManager
from ..domain.commands import CommandResult, CommandStatus
from ..domain.events import ROOM_TYPES, OutboundEvents, heartbeat_payload
from ..exceptions import CommandUsageError, ConnectionFailedError, NotConnectedError, TransportError
from ...utils.formatting import format_timestamp, truncate_message, validate_username

OutputFn = Callable[[str], None]
CommandHandler = Callable[[str, List[str], str], Awaitable[CommandResult]]


@dataclass(frozen=True)
class CommandEntry:
    """Registration entry for one command token."""
    name: str
    handler: CommandHandler
    usage: str
    description: str
    aliases: tuple = ()


class CommandDispatcher:
    """
    Maps command tokens to outbound protocol actions and local reads.
    """

    def __init__(
        self,
        state: ConnectionState,
        reconnection: Optional[ReconnectionManager] = None,
        output: Optional[OutputFn] = None,
        max_message_length: int = 2000
    ) -> None:
        self._state = state
        self._reconnection = reconnection
        self._output = output or typer.echo
        self._max_message_length = max_message_length

        self._commands: Dict[str, CommandEntry] = {}
        self._aliases: Dict[str, str] = {}
        self._metrics: Dict[str, int] = {
            'commands_dispatched': 0,
            'commands_completed': 0,
            'commands_failed': 0,
            'usage_errors': 0,
            'rejected_not_connected': 0,
        }
        self._register_builtin_commands()

    def _register_builtin_commands(self) -> None:
        register = self.register_command
        register("/global", self._handle_global, "/global <message>", "Send a message to global chat")
        register("/group", self._handle_group, "/group <group_id> <message>", "Send a message to a group")
        register("/guild", self._handle_guild, "/guild <guild_id> <message>", "Send a message to a guild")
        register("/private", self._handle_private, "/private <user_id> <message>", "Send a private message")
        register("/create", self._handle_create_room, "/create <group|guild> <name>", "Create a new room")
        register("/join", self._handle_join_room, "/join <room_id>", "Join a room")
        register("/leave", self._handle_leave_room, "/leave [room_id]", "Leave a room (default: current room)")
        register("/list", self._handle_list_rooms, "/list <group|guild>", "List available rooms")
        register("/ping", self._handle_ping, "/ping", "Send a ping to test connection")
        register("/test", self._handle_test_event, "/test", "Send a test event")
        register("/heartbeat", self._handle_manual_heartbeat, "/heartbeat", "Send a manual heartbeat")
        register("/username", self._handle_username, "/username <new_name>", "Change your username")
        register("/stats", self._handle_stats, "/stats", "Show client connection statistics")
        register("/debug", self._handle_debug, "/debug", "Display connection debugging information")
        register("/errors", self._handle_errors, "/errors", "Display connection error history")
        register("/forcereconnect", self._handle_force_reconnect, "/forcereconnect",
                 "Force a reconnection attempt")
        register("/help", self._handle_help, "/help", "Show this help")
        register("/exit", self._handle_exit, "/exit", "Disconnect and exit", aliases=("/quit",))

    def register_command(self, name: str, handler: CommandHandler, usage: str,
                         description: str, aliases: tuple = ()) -> None:
        """Register a handler for a command token (including the leading slash)."""
        entry = CommandEntry(name=name, handler=handler, usage=usage,
                            description=description, aliases=aliases)
        self._commands[name] = entry
        for alias in aliases:
            self._aliases[alias] = name
        logger.debug(f"Registered command {name}")

    @property
    def commands(self) -> List[str]:
        return list(self._commands)

    def get_metrics(self) -> Dict[str, int]:
        return self._metrics.copy()

    def help_text(self) -> str:
        width = max(len(entry.usage) for entry in self._commands.values())
        lines = ["==== Chat Commands ===="]
        for entry in self._commands.values():
            lines.append(f"{entry.usage.ljust(width)}  - {entry.description}")
        lines.append("Any other text is sent to global chat")
        lines.append("=======================")
        return "\n".join(lines)

    async def dispatch(self, line: str) -> CommandResult:
        """
        Process one raw input line.

        Returns:
            Result describing what happened; never raises for user input
        """
        text = line.strip()
        if not text:
            return CommandResult.success("", "")

        self._metrics['commands_dispatched'] += 1
        token = text.split(maxsplit=1)[0]

        name = self._aliases.get(token.lower(), token.lower()) if token.startswith("/") else ""
        try:
            if not name:
                result = await self._send_implicit_global(text)
            elif name in self._commands:
                logger.debug(f"COMMAND: Executing {name}")
                result = await self._commands[name].handler(name, text.split(), text)
            else:
                logger.debug(f"COMMAND ERROR: Unknown command: {token}")
                result = CommandResult.usage(
                    token, f"Unknown command: {token}. Type /help for available commands.")
                self._output(result.message)
        except CommandUsageError as e:
            self._output(f"❌ {e.usage}")
            result = CommandResult.usage(name, e.usage)
        except NotConnectedError as e:
            self._output(f"❌ Error: {e.message}")
            self._output("   Use /forcereconnect to attempt reconnection")
            result = CommandResult.not_connected(name, e.message)

        self._record(result)
        return result

    def _record(self, result: CommandResult) -> None:
        if result.status == CommandStatus.COMPLETED:
            self._metrics['commands_completed'] += 1
        elif result.status == CommandStatus.USAGE_ERROR:
            self._metrics['usage_errors'] += 1
        elif result.status == CommandStatus.NOT_CONNECTED:
            self._metrics['rejected_not_connected'] += 1
        elif result.status == CommandStatus.FAILED:
            self._metrics['commands_failed'] += 1

    # Shared helpers

    def _require_connected(self) -> None:
        if not self._state.is_live():
            raise NotConnectedError()

    def _usage(self, command: str) -> CommandUsageError:
        logger.debug(f"COMMAND ERROR: Invalid {command} format")
        return CommandUsageError(f"Usage: {self._commands[command].usage}")

    async def _emit(self, command: str, event: str, *args: Any,
                    heartbeat: bool = False, success: str = "") -> CommandResult:
        session = self._state.session
        if session is None:
            raise NotConnectedError()

        try:
            await session.emit(event, *args)
        except TransportError as e:
            logger.warning(f"COMMAND ERROR: Failed to emit {event}: {e}")
            self._state.add_connection_error(f"Failed to send {event}: {e}")
            self._output(f"❌ Error sending {event}: {e}")
            return CommandResult.failure(command, str(e))

        if heartbeat:
            self._state.track_heartbeat_sent()
        else:
            self._state.track_message_sent()
        logger.debug(f"{event.upper()} SENT")
        if success:
            self._output(f"✅ {success}")
        return CommandResult.success(command, success, event=event)

    async def _send_implicit_global(self, text: str) -> CommandResult:
        self._require_connected()
        return await self._emit("", OutboundEvents.GLOBAL_MESSAGE, self._text(text),
                                success="Message sent successfully")

    def _text(self, message: str) -> str:
        return truncate_message(message, self._max_message_length)

    @staticmethod
    def _rest(text: str, skip: int) -> List[str]:
        """Split off ``skip`` leading tokens, keeping the remainder verbatim."""
        return text.split(maxsplit=skip)

    # Messaging

    async def _handle_global(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        pieces = self._rest(text, 1)
        if len(pieces) < 2:
            raise self._usage(command)
        message = self._text(pieces[1])
        self._output(f"🌐 Sending global message: {message}")
        return await self._emit(command, OutboundEvents.GLOBAL_MESSAGE, message,
                                success="Global message sent successfully!")

    async def _send_targeted(self, command: str, text: str, event: str, key: str, label: str) -> CommandResult:
        self._require_connected()
        pieces = self._rest(text, 2)
        if len(pieces) < 3:
            raise self._usage(command)
        target, message = pieces[1], self._text(pieces[2])
        return await self._emit(command, event, {key: target, 'message': message},
                                success=f"{label} message sent to {target}")

    async def _handle_group(self, command: str, parts: List[str], text: str) -> CommandResult:
        return await self._send_targeted(command, text, OutboundEvents.GROUP_MESSAGE, 'groupId', "Group")

    async def _handle_guild(self, command: str, parts: List[str], text: str) -> CommandResult:
        return await self._send_targeted(command, text, OutboundEvents.GUILD_MESSAGE, 'guildId', "Guild")

    async def _handle_private(self, command: str, parts: List[str], text: str) -> CommandResult:
        return await self._send_targeted(command, text, OutboundEvents.PRIVATE_MESSAGE, 'userId', "Private")

    # Rooms

    @staticmethod
    def _room_type(value: str) -> Optional[str]:
        value = value.lower()
        if value.endswith("s") and value[:-1] in ROOM_TYPES:
            value = value[:-1]
        return value if value in ROOM_TYPES else None

    async def _handle_create_room(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        pieces = self._rest(text, 2)
        if len(pieces) < 3:
            raise self._usage(command)
        room_type = self._room_type(pieces[1])
        if room_type is None:
            raise CommandUsageError("Room type must be 'group' or 'guild'")
        name = pieces[2].strip()
        return await self._emit(command, OutboundEvents.CREATE_ROOM, {'type': room_type, 'name': name},
                                success=f"Room creation request sent for {room_type}: {name}")

    async def _handle_join_room(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        if len(parts) < 2:
            raise self._usage(command)
        room_id = parts[1]
        return await self._emit(command, OutboundEvents.JOIN_ROOM, room_id,
                                success=f"Join request sent for room: {room_id}")

    async def _handle_leave_room(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        room_id = parts[1] if len(parts) > 1 else self._state.current_room
        if not room_id:
            raise self._usage(command)
        return await self._emit(command, OutboundEvents.LEAVE_ROOM, room_id,
                                success=f"Leave request sent for room: {room_id}")

    async def _handle_list_rooms(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        if len(parts) < 2:
            raise self._usage(command)
        room_type = self._room_type(parts[1])
        if room_type is None:
            raise CommandUsageError("Room type must be 'group' or 'guild'")
        return await self._emit(command, OutboundEvents.GET_ROOMS, room_type,
                                success=f"Room list request sent for type: {room_type}")

    # Diagnostics

    async def _handle_ping(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        self._output("🏓 Testing connection with ping...")
        return await self._emit(command, OutboundEvents.PING, f"Ping from {self._state.username}",
                                success="Ping sent successfully!")

    async def _handle_test_event(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        return await self._emit(command, OutboundEvents.TEST_EVENT, f"Test event from {self._state.username}",
                                success="Test event sent successfully")

    async def _handle_manual_heartbeat(self, command: str, parts: List[str], text: str) -> CommandResult:
        self._require_connected()
        self._output("💓 Sending manual heartbeat...")
        payload = heartbeat_payload(
            client_id=self._state.client_id,
            username=self._state.username,
            timestamp=datetime.now(timezone.utc).isoformat(),
            manual=True,
        )
        return await self._emit(command, OutboundEvents.CLIENT_HEARTBEAT, payload,
                                heartbeat=True, success="Manual heartbeat sent successfully!")

    # Identity

    async def _handle_username(self, command: str, parts: List[str], text: str) -> CommandResult:
        if len(parts) < 2:
            raise self._usage(command)

        new_name = parts[1]
        problem = validate_username(new_name)
        if problem:
            raise CommandUsageError(f"Invalid username: {problem}")

        if not self._state.is_live():
            self._state.set_username(new_name)
            logger.info(f"COMMAND: Username changed locally to: {new_name}")
            self._output(f"Username changed to: {new_name} (will be announced on next connection)")
            return CommandResult.success(command, f"Username changed to: {new_name}")

        result = await self._emit(command, OutboundEvents.SET_USERNAME, new_name,
                                  success="Username change sent to server")
        if result.is_success:
            self._state.set_username(new_name)
            logger.info(f"COMMAND: Username changed to: {new_name}")
            self._output(f"Username changed to: {new_name}")
        return result

    # Local reads

    async def _handle_stats(self, command: str, parts: List[str], text: str) -> CommandResult:
        stats = self._state.get_stats()
        self._output("📊 Client Statistics:")
        self._output(stats)
        return CommandResult.success(command, stats)

    async def _handle_debug(self, command: str, parts: List[str], text: str) -> CommandResult:
        snap = self._state.snapshot()
        lines = [
            "==== Debug Information ====",
            f"Connected: {snap.connected}",
            f"Session: {snap.session_id or ('active' if snap.has_session else 'none')}",
            f"Username: {snap.username}",
            f"Client ID: {snap.client_id}",
            f"Current Room: {snap.current_room or '(global)'}",
            f"Last Activity: {format_timestamp(snap.last_activity_at)}",
            f"Last Heartbeat Sent: {format_timestamp(snap.last_heartbeat_sent_at)}",
            f"Last Heartbeat Received: {format_timestamp(snap.last_heartbeat_received_at)}",
            f"Last Reconnect Attempt: {format_timestamp(snap.last_reconnect_attempt_at)}",
            "",
            "Connection Errors:",
        ]
        if snap.connection_errors:
            lines.extend(f"- {error}" for error in snap.connection_errors)
        else:
            lines.append("No connection errors recorded")
        lines.append("===========================")

        report = "\n".join(lines)
        self._output(report)
        return CommandResult.success(command, report)

    async def _handle_errors(self, command: str, parts: List[str], text: str) -> CommandResult:
        errors = self._state.get_connection_errors()
        if not errors:
            self._output("No connection errors recorded")
            return CommandResult.success(command, "No connection errors recorded")

        lines = ["==== Connection Error History ===="]
        lines.extend(f"{i}. {error}" for i, error in enumerate(errors, start=1))
        lines.append("=================================")
        report = "\n".join(lines)
        self._output(report)
        return CommandResult.success(command, report)

    # Session control

    async def _handle_force_reconnect(self, command: str, parts: List[str], text: str) -> CommandResult:
        if self._reconnection is None:
            self._output("❌ Reconnection is not available")
            return CommandResult.failure(command, "Reconnection is not available")

        logger.info("COMMAND: Executing forced reconnection")
        self._output(f"Attempting to reconnect to {self._reconnection.url}...")
        try:
            confirmed = await self._reconnection.reconnect()
        except ConnectionFailedError as e:
            self._output(f"❌ Reconnection failed: {e}")
            return CommandResult.failure(command, str(e))

        if confirmed:
            self._output("✅ Successfully reconnected to server")
            return CommandResult.success(command, "Successfully reconnected to server")

        self._output("Reconnection attempt in progress - check status with /debug")
        return CommandResult.success(command, "Reconnection attempt in progress")

    async def _handle_help(self, command: str, parts: List[str], text: str) -> CommandResult:
        help_text = self.help_text()
        self._output(help_text)
        return CommandResult.success(command, help_text)

    async def _handle_exit(self, command: str, parts: List[str], text: str) -> CommandResult:
        result = CommandResult.exit(command)
        self._output(result.message)
        return result
