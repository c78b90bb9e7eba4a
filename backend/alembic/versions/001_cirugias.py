"""Tablas de cirugías, historial, notificaciones, configuración y plantillas

Revision ID: 001_cirugias
Revises:
Create Date: 2026-02-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_cirugias'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Crea todas las tablas del sistema."""

    # Tabla Cirugia
    op.create_table(
        'cirugia',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('id_paciente', sa.Integer(), nullable=True),
        sa.Column('fecha_cirugia', sa.Date(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('dni', sa.String(), nullable=True),
        sa.Column('obra_social', sa.String(), nullable=True),
        sa.Column('telefono', sa.String(), nullable=False, default=''),
        sa.Column('telefono_original', sa.String(), nullable=False, default=''),
        sa.Column('telefono_valido', sa.Boolean(), nullable=False, default=False),
        sa.Column('telefono_nota', sa.String(), nullable=True),
        sa.Column('modulo', sa.String(), nullable=True),
        sa.Column('descripcion', sa.String(), nullable=True),
        sa.Column('medico', sa.String(), nullable=True),
        sa.Column('grupo_agendas', sa.String(), nullable=True),
        sa.Column('motivo', sa.String(), nullable=True),
        sa.Column('ausente', sa.String(), nullable=True),
        sa.Column('excluido', sa.Boolean(), nullable=False, default=False),
        sa.Column('status', sa.String(), nullable=False, default='LILA'),
        sa.Column('notas', sa.String(), nullable=True),
        sa.Column('operador', sa.String(), nullable=True),
        sa.Column('archivos', sa.String(), nullable=True),
        sa.Column('notificado_at', sa.DateTime(), nullable=True),
        sa.Column('documentacion_recibida_at', sa.DateTime(), nullable=True),
        sa.Column('autorizado_at', sa.DateTime(), nullable=True),
        sa.Column('confirmado_at', sa.DateTime(), nullable=True),
        sa.Column('ultimo_mensaje_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id_paciente', 'fecha_cirugia', name='uq_cirugia_paciente_fecha')
    )
    op.create_index('ix_cirugia_id_paciente', 'cirugia', ['id_paciente'])
    op.create_index('ix_cirugia_fecha_cirugia', 'cirugia', ['fecha_cirugia'])
    op.create_index('ix_cirugia_excluido', 'cirugia', ['excluido'])
    op.create_index('ix_cirugia_status', 'cirugia', ['status'])

    # Historial de estados
    op.create_table(
        'evento_cirugia',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('cirugia_id', sa.String(), nullable=False),
        sa.Column('accion', sa.String(), nullable=False),
        sa.Column('from_status', sa.String(), nullable=True),
        sa.Column('to_status', sa.String(), nullable=False),
        sa.Column('details', sa.String(), nullable=True),
        sa.Column('performed_by', sa.String(), nullable=False, default='bot'),
        sa.Column('fuera_de_secuencia', sa.Boolean(), nullable=False, default=False),
        sa.Column('datos_adicionales', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['cirugia_id'], ['cirugia.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_evento_cirugia_cirugia_id', 'evento_cirugia', ['cirugia_id'])
    op.create_index('ix_evento_cirugia_accion', 'evento_cirugia', ['accion'])
    op.create_index('ix_evento_cirugia_created_at', 'evento_cirugia', ['created_at'])

    # Umbrales ya notificados
    op.create_table(
        'notificacion_cirugia',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('cirugia_id', sa.String(), nullable=False),
        sa.Column('umbral_horas', sa.Integer(), nullable=False),
        sa.Column('telefono', sa.String(), nullable=False),
        sa.Column('enviado_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['cirugia_id'], ['cirugia.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cirugia_id', 'umbral_horas', name='uq_notificacion_umbral')
    )
    op.create_index('ix_notificacion_cirugia_cirugia_id', 'notificacion_cirugia', ['cirugia_id'])

    # Configuración editable
    op.create_table(
        'configuracionsistema',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('default_area_code', sa.String(), nullable=True),
        sa.Column('umbrales_horas', sa.String(), nullable=True),
        sa.Column('notificaciones_activas', sa.Boolean(), nullable=False, default=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('updated_by', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Plantillas de mensajes
    op.create_table(
        'plantilla_mensaje',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('tipo', sa.String(), nullable=False),
        sa.Column('obra_social_pattern', sa.String(), nullable=False, default='*'),
        sa.Column('contenido', sa.String(), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=False, default=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_plantilla_mensaje_tipo', 'plantilla_mensaje', ['tipo'])
    op.create_index('ix_plantilla_mensaje_obra_social_pattern', 'plantilla_mensaje', ['obra_social_pattern'])


def downgrade() -> None:
    """Elimina todas las tablas del sistema."""
    op.drop_table('plantilla_mensaje')
    op.drop_table('configuracionsistema')
    op.drop_table('notificacion_cirugia')
    op.drop_table('evento_cirugia')
    op.drop_table('cirugia')
