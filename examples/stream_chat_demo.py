"""Minimal demonstration of the streaming chat client."""

from deepseek_client import create_client

if __name__ == "__main__":
    client = create_client()
    client.send_system_message("你是一个有用的AI助手。")
    question = "你好，请介绍一下自己。"
    print("User:", question)
    print("Assistant: ", end="", flush=True)
    with client.send_user_message_streaming(question) as stream:
        for delta in stream:
            print(delta.text, end="", flush=True)
    print()
    print("Dropped chunks:", stream.diagnostics.dropped)
