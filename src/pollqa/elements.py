"""Selectors and fixture literals for the meeting client's polling UI."""

# Layout
WHITEBOARD = 'svg[data-test="whiteboard"]'
ACTIONS = 'button[aria-label="Actions"]'
CHAT_BUTTON = 'div[data-test="chatButton"]'

# Audio modal
LISTEN_ONLY_BUTTON = 'button[aria-label="Listen only"]'
CLOSE_AUDIO_BUTTON = 'button[aria-label="Close Join audio modal"]'
AUDIO_JOINED = 'button[data-test="leaveAudio"]'

# Poll authoring (moderator)
POLLING = 'li[data-test="polling"]'
POLL_PANE_TITLE = 'div[data-test="pollPaneTitle"]'
POLL_LETTER_ALTERNATIVES = 'button[data-test="pollLetterAlternatives"]'
POLL_OPTION_ITEM = 'input[data-test="pollOptionItem"]'
ADD_POLL_ITEM = 'button[data-test="addPollItem"]'
DELETE_POLL_OPTION = 'button[data-test="deletePollOption"]'
POLL_QUESTION_AREA = 'textarea[data-test="pollQuestionArea"]'
USER_RESPONSE_BUTTON = 'button[data-test="userResponseBtn"]'
ANONYMOUS_POLL = 'input[data-test="anonymousPollBtn"]'
START_POLL = 'button[data-test="startPoll"]'
QUICK_POLL = 'button[data-test="quickPollBtn"]'

# Live poll management (moderator)
POLL_MENU_BUTTON = 'div[data-test="pollMenuButton"]'
CANCEL_POLL_BUTTON = 'button[data-test="cancelPollButton"]'
PUBLISH_POLLING_LABEL = 'button[data-test="publishPollingLabel"]'
RESTART_POLL = 'button[data-test="restartPoll"]'
RECEIVED_ANSWER = 'td[data-test="receivedAnswer"]'

# Answering (attendee)
POLLING_CONTAINER = 'div[data-test="pollingContainer"]'
POLL_ANSWER_OPTION_BUTTON = 'button[data-test="pollAnswerOption"]'
POLL_ANSWER_OPTION_INPUT = 'input[data-test="pollAnswerOption"]'
POLL_SUBMIT_ANSWER = 'button[data-test="submitAnswer"]'

# Published results
POLL_RESULTS = 'g[data-test="pollResultAria"]'
CHAT_POLL_MESSAGE_TEXT = 'p[data-test="chatPollMessageText"]'

# Presentation upload
MANAGE_PRESENTATIONS = 'li[data-test="managePresentations"]'
FILE_UPLOAD = 'input[type="file"]'
CONFIRM_MANAGE_PRESENTATION = 'button[data-test="confirmManagePresentation"]'
PRESENTATION_STATUS_INFO = 'span[id="currentPresentationToast"]'

# Literals
POLL_QUESTION = "Are we good?"
ANSWER_MESSAGE = "All good!"
NEW_OPTION_TEXT = "new option"
QUESTION_SLIDE_FILE = "mockPollSlide.pdf"
CONVERSION_DONE_MESSAGE = "Current presentation"
