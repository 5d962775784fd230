import httpx
import openai

from nexus_cli import ConversationSession
from nexus_cli.core import ERROR_PREFIX, NO_RESPONSE

from .test_base import BaseNexusCLITest, make_completion, make_tool, make_tool_call


class TestSession(BaseNexusCLITest):
    def test_session_creation(self):
        """A new session starts with empty history and no tools"""
        self.assertEqual(self.session.messages, [])
        self.assertEqual(len(self.session.tools), 0)

    def test_hello_without_tools(self):
        """A plain turn leaves exactly the returned transcript in history"""
        self.mock_client.chat.completions.create.return_value = make_completion("Hi there!")

        reply = self.session.send("hello")

        self.assertEqual(reply, "Hi there!")
        self.assertEqual(
            self.session.messages,
            [
                {"role": "user", "content": "hello"},
                {"role": "assistant", "content": "Hi there!"},
            ],
        )
        self.mock_client.chat.completions.create.assert_called_once()

    def test_history_follows_transcripts(self):
        """History grows by what each transcript adds and is never doubled"""
        self.mock_client.chat.completions.create.side_effect = [
            make_completion("one"),
            make_completion("two"),
        ]

        self.session.send("first")
        self.assertEqual(len(self.session.messages), 2)
        self.session.send("second")
        self.assertEqual(len(self.session.messages), 4)

        second_request = self.mock_client.chat.completions.create.call_args_list[1].kwargs["messages"]
        self.assertEqual([m["role"] for m in second_request], ["system", "user", "assistant", "user"])

    def test_tool_messages_kept_in_history(self):
        tool = make_tool("search")
        session = ConversationSession(self.config, self.mock_wrapper, {"search": tool})
        self.mock_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[make_tool_call("call_1", "search", '{"query": "x"}')]),
            make_completion("Done."),
        ]

        reply = session.send("look it up")

        self.assertEqual(reply, "Done.")
        self.assertEqual([m["role"] for m in session.messages], ["user", "assistant", "tool", "assistant"])
        self.assertIn("[Using tool: search]", self.printed())

    def test_blank_input_rejected(self):
        for text in ("", "   "):
            with self.assertRaises(ValueError):
                self.session.send(text)
        self.assertEqual(self.session.messages, [])
        self.mock_client.chat.completions.create.assert_not_called()

    def test_failure_keeps_user_message(self):
        """A failed call returns an error string and the next turn still works"""
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        self.mock_client.chat.completions.create.side_effect = [
            openai.APIConnectionError(request=request),
            make_completion("Back online."),
        ]

        reply = self.session.send("hello")

        self.assertTrue(reply.startswith(ERROR_PREFIX))
        self.assertEqual(self.session.messages, [{"role": "user", "content": "hello"}])

        reply = self.session.send("are you there?")

        self.assertEqual(reply, "Back online.")
        self.assertEqual(
            [m["content"] for m in self.session.messages],
            ["hello", "are you there?", "Back online."],
        )

    def test_empty_reply_fallback(self):
        self.mock_client.chat.completions.create.return_value = make_completion(None)

        self.assertEqual(self.session.send("hello"), NO_RESPONSE)

    def test_tools_are_read_only(self):
        session = ConversationSession(self.config, self.mock_wrapper, {"search": make_tool()})

        with self.assertRaises(TypeError):
            session.tools["other"] = make_tool("other")

    def test_failed_tool_notification(self):
        tool = make_tool("search", output={"content": ["denied"], "isError": True}, is_error=True)
        session = ConversationSession(self.config, self.mock_wrapper, {"search": tool})
        self.mock_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[make_tool_call("call_1", "search")]),
            make_completion("It failed."),
        ]

        session.send("try it")

        output = self.printed()
        self.assertIn("[Tool failed]", output)
        self.assertNotIn("denied", output)  # payload only shown in debug mode
        self.assertNotIn("[Args:", output)

    def test_success_notice_hidden_without_debug(self):
        session = ConversationSession(self.config, self.mock_wrapper, {"search": make_tool("search")})
        self.mock_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[make_tool_call("call_1", "search")]),
            make_completion("Done."),
        ]

        session.send("look it up")

        self.assertNotIn("[Tool completed successfully]", self.printed())

    def test_last_failed_tracks_each_turn(self):
        self.mock_client.chat.completions.create.side_effect = [
            RuntimeError("boom"),
            make_completion("Error: this is what the model said"),
        ]

        self.session.send("first")
        self.assertTrue(self.session.last_failed)

        reply = self.session.send("second")
        self.assertFalse(self.session.last_failed)
        self.assertEqual(reply, "Error: this is what the model said")

    def test_truncation_hidden_without_debug(self):
        self.mock_client.chat.completions.create.return_value = make_completion("Partial", finish_reason="length")

        self.session.send("write a novel")

        self.assertNotIn("truncated", self.printed())


class TestSessionDebug(BaseNexusCLITest):
    debug = True

    def test_debug_prints_success_notice(self):
        session = ConversationSession(self.config, self.mock_wrapper, {"search": make_tool("search")})
        self.mock_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[make_tool_call("call_1", "search", '{"query": "x"}')]),
            make_completion("Done."),
        ]

        session.send("x")

        output = self.printed()
        self.assertIn("[Tool completed successfully]", output)
        self.assertNotIn("[Tool failed]", output)

    def test_debug_notes_truncated_reply(self):
        self.mock_client.chat.completions.create.return_value = make_completion("Partial", finish_reason="length")

        reply = self.session.send("write a novel")

        self.assertEqual(reply, "Partial")
        self.assertIn("[Reply truncated", self.printed())

    def test_debug_prints_arguments_and_errors(self):
        tool = make_tool("search", output={"content": ["denied"], "isError": True}, is_error=True)
        session = ConversationSession(self.config, self.mock_wrapper, {"search": tool})
        self.mock_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[make_tool_call("call_1", "search", '{"query": "secret"}')]),
            make_completion("It failed."),
        ]

        session.send("try it")

        output = self.printed()
        self.assertIn("[Args:", output)
        self.assertIn("secret", output)
        self.assertIn("[Error:", output)
        self.assertIn("denied", output)
