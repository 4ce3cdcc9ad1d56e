"""
Instruction dispatcher.

Maps each of the eight coordinator instructions to a handler that builds the
matching trial steps, appends them to the timeline and resumes it. The
coordinator decides what happens next; handlers only run what an
instruction implies and then let the timeline suspend again.
"""

from typing import Callable, Dict, Optional, Type
import logging

from .data_collector import DataCollector
from .execution.guard import WaitGuard
from .execution.production import ProductionState, make_production_loop
from .execution.step import (
    INDEFINITE,
    Leaf,
    LeafKind,
    Sequence,
    StepDescriptor,
    StepResult,
    WaitMarker,
)
from .execution.timeline import Timeline
from .ipc.messages import (
    DirectorResponseMessage,
    DirectorTurn,
    EndExperiment,
    EnterWaitingRoom,
    Feedback,
    FinishedFeedbackMessage,
    Instruction,
    InstructionsCompleteMessage,
    InvalidInstructionError,
    MatcherResponseMessage,
    MatcherTurn,
    PairedInstructions,
    PartnerDropout,
    UnknownInstructionError,
    WaitForPartner,
)
from .session import Role, Session

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Routes inbound instructions to their handlers.

    Example:
        dispatcher = Dispatcher(config, session, timeline, transport, collector)
        dispatcher.dispatch(DirectorTurn(target_object="object4", partner_id="P2"))
    """

    def __init__(self, config, session: Session, timeline: Timeline, transport,
                 data_collector: DataCollector,
                 on_session_end: Optional[Callable[[], None]] = None):
        """
        Initialize dispatcher.

        Args:
            config: InteractionConfig (label table, object set, timings, texts)
            session: Local participant session
            timeline: Timeline the handlers append to
            transport: Anything with send(message) and close()
            data_collector: Recorder for director/matcher rows
            on_session_end: Called after the final screen, once the transport is closed
        """
        self.config = config
        self.session = session
        self.timeline = timeline
        self.guard = WaitGuard(timeline)
        self.transport = transport
        self.data_collector = data_collector
        self.on_session_end = on_session_end

        self._handlers: Dict[Type[Instruction], Callable] = {
            EnterWaitingRoom: self.enter_waiting_room,
            WaitForPartner: self.wait_for_partner,
            PairedInstructions: self.paired_instructions,
            PartnerDropout: self.partner_dropout,
            EndExperiment: self.end_experiment,
            DirectorTurn: self.director_turn,
            MatcherTurn: self.matcher_turn,
            Feedback: self.feedback,
        }

    @property
    def handlers(self) -> Dict[Type[Instruction], Callable]:
        return dict(self._handlers)

    def dispatch(self, instruction: Instruction):
        """
        Run the handler for ``instruction``.

        Raises:
            UnknownInstructionError: No handler for this instruction type
        """
        handler = self._handlers.get(type(instruction))
        if handler is None:
            raise UnknownInstructionError(f"No handler for instruction {instruction!r}")

        logger.info(f"Instruction: {instruction}")
        handler(instruction)

    # ==================== WAITING ====================

    def enter_waiting_room(self, instruction: EnterWaitingRoom):
        # Entry state: nothing can be waiting yet
        self.timeline.append(self._wait_leaf(WaitMarker.WAITING_ROOM, 'waiting_room'))
        self.timeline.resume()

    def wait_for_partner(self, instruction: WaitForPartner):
        self.guard.force_end_if_waiting()
        self.timeline.append(self._wait_leaf(WaitMarker.WAITING_FOR_PARTNER, 'waiting_for_partner'))
        self.timeline.resume()

    def _wait_leaf(self, marker: WaitMarker, text_key: str) -> Leaf:
        return Leaf(
            name=marker.value,
            stimulus=self.config.texts[text_key],
            duration=INDEFINITE,
            wait_marker=marker,
            suspend_after=True
        )

    # ==================== INFO SCREENS ====================

    def paired_instructions(self, instruction: PairedInstructions):
        self.guard.force_end_if_waiting()
        self.timeline.append(Leaf(
            name="interaction_instructions",
            stimulus=self.config.texts['interaction_instructions'],
            choices=[self.config.texts['continue']],
            on_finish=lambda result: self.transport.send(InstructionsCompleteMessage()),
            suspend_after=True
        ))
        self.timeline.resume()

    def partner_dropout(self, instruction: PartnerDropout):
        """Show the 'something went wrong' screen, then go straight to the end."""
        self.guard.force_end_if_waiting()
        self.timeline.append(Leaf(
            name="partner_dropout",
            stimulus=self.config.texts['partner_dropout'],
            choices=[self.config.texts['continue']]
        ))
        self.end_experiment(EndExperiment())

    def end_experiment(self, instruction: EndExperiment):
        self.guard.force_end_if_waiting()
        self.timeline.append(Leaf(
            name="final_screen",
            stimulus=self.config.texts['final'],
            choices=[self.config.texts['continue']],
            on_finish=lambda result: self.finish_session()
        ))
        self.timeline.resume()

    def finish_session(self):
        """Close the connection and stop the timeline for good."""
        logger.info("Session finished")
        self.session.end_turn()
        self.transport.close()
        self.timeline.halt()
        if self.on_session_end:
            self.on_session_end()

    def feedback(self, instruction: Feedback):
        self.guard.force_end_if_waiting()
        text_key = 'correct' if instruction.score == 1 else 'incorrect'
        self.timeline.append(Leaf(
            name="feedback",
            stimulus=self.config.texts[text_key],
            duration=self.config.feedback_duration,
            response_ends_trial=False,
            data={'score': instruction.score},
            on_finish=lambda result: self.transport.send(FinishedFeedbackMessage()),
            suspend_after=True
        ))
        self.timeline.resume()

    # ==================== TURNS ====================

    def director_turn(self, instruction: DirectorTurn):
        """
        Show the object, let the director pick a label, make them click it once
        per character, then send the label to the coordinator.
        """
        self.guard.force_end_if_waiting()

        try:
            label_choices = self.config.labels_for(instruction.target_object)
        except KeyError:
            raise InvalidInstructionError(f"Unknown target object: {instruction.target_object}")

        partner_id = instruction.partner_id
        object_filename = self.config.image_path(instruction.target_object)
        state = ProductionState()

        # Buttons are laid out but invisible so the screen does not jump
        object_preview = Leaf(
            name="director_object",
            kind=LeafKind.IMAGE,
            stimulus=object_filename,
            choices=label_choices,
            hidden_choices=True,
            response_ends_trial=False,
            duration=self.config.object_preview_duration,
            on_start=lambda descriptor: self.session.begin_turn(Role.DIRECTOR, partner_id)
        )

        def shuffle_labels(descriptor: StepDescriptor):
            descriptor.choices = self.presenter_shuffle(label_choices)
            descriptor.data['button_choices'] = list(descriptor.choices)

        def on_label_selected(result: StepResult):
            state.select(result.selected_choice)
            self.data_collector.record(result, 'director', partner_id=partner_id)

        label_choice = Leaf(
            name="director_label_choice",
            kind=LeafKind.IMAGE,
            stimulus=object_filename,
            data={'block': 'production'},
            on_start=shuffle_labels,
            on_finish=on_label_selected
        )

        def send_label(result: StepResult):
            self.transport.send(DirectorResponseMessage(
                participant=self.session.participant_id,
                partner=partner_id,
                target_object=instruction.target_object,
                response=state.selected_label
            ))
            self.session.end_turn()

        message_to_server = Leaf(
            name="director_send",
            kind=LeafKind.CALL,
            on_finish=send_label,
            suspend_after=True
        )

        self.timeline.append(Sequence(
            [object_preview, label_choice, make_production_loop(state, object_filename), message_to_server],
            name="director_trial"
        ))
        self.timeline.resume()

    def matcher_turn(self, instruction: MatcherTurn):
        """Show the director's label and let the matcher pick an object."""
        self.guard.force_end_if_waiting()

        partner_id = instruction.partner_id
        object_choices = list(self.config.matcher_objects)

        def start_matcher_trial(descriptor: StepDescriptor):
            self.session.begin_turn(Role.MATCHER, partner_id)
            descriptor.choices = self.presenter_shuffle(object_choices)
            descriptor.data['button_choices'] = list(descriptor.choices)

        def on_object_selected(result: StepResult):
            self.data_collector.record(result, 'matcher', partner_id=partner_id)
            self.transport.send(MatcherResponseMessage(
                participant=self.session.participant_id,
                partner=partner_id,
                director_label=instruction.label,
                response=result.selected_choice
            ))
            self.session.end_turn()

        self.timeline.append(Leaf(
            name="matcher_trial",
            stimulus=instruction.label,
            choices=object_choices,
            choice_images=True,
            on_start=start_matcher_trial,
            on_finish=on_object_selected,
            suspend_after=True
        ))
        self.timeline.resume()

    def presenter_shuffle(self, choices):
        return self.timeline.presenter.shuffle(choices)
